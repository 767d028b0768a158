from conftest import FakeSiteManager
from wp_rewrite import cleanup, config
from wp_rewrite.errors import CommandError


class FakePlatform:
    def __init__(self, sites):
        self.sites = sites

    def list_sites(self):
        return self.sites


def test_matching_user_ids():
    users = [
        {"ID": "1", "user_email": "admin@example.com"},
        {"ID": "7", "user_email": "migrations@rapyd.cloud"},
        {"ID": "8", "user_email": "Migrations+shop@Rapyd.Cloud"},
        {"ID": "9", "user_email": "migrations@rapyd.cloud.example.com"},
        {"ID": "10", "user_email": "xmigrations@rapyd.cloud"},
    ]

    assert cleanup.matching_user_ids(users) == ["7", "8"]


def test_cleanup_users(tmp_path):
    shop = tmp_path / "shop"
    blog = tmp_path / "blog"
    shop.mkdir()
    blog.mkdir()
    sites = [
        {"slug": "shop", "webroot": str(shop), "user": "shop", "state": "ENABLED"},
        {"slug": "blog", "webroot": str(blog), "user": "blog", "state": "ENABLED"},
        {"slug": "old", "webroot": str(blog), "user": "old", "state": "DISABLED"},
        {"slug": "gone", "webroot": str(tmp_path / "gone"), "user": "gone", "state": "ENABLED"},
        {"slug": "nouser", "webroot": str(blog), "user": "nouser", "state": "ENABLED"},
    ]
    managers = {
        str(shop): FakeSiteManager(users=[
            {"ID": "1", "user_email": "admin@shop.com"},
            {"ID": "7", "user_email": "migrations+shop@rapyd.cloud"},
        ]),
        str(blog): FakeSiteManager(users=[{"ID": "1", "user_email": "admin@blog.com"}]),
    }
    created = []

    def manager_factory(site_path, wp_bin, user, flags):
        created.append((site_path, user, flags))
        return managers[site_path]

    summary = cleanup.cleanup_users(
        FakePlatform(sites),
        wp_bin="wp",
        user_exists=lambda name: name != "nouser",
        manager_factory=manager_factory,
    )

    assert (summary.deleted, summary.not_found, summary.errors) == (1, 1, 2)
    assert managers[str(shop)].calls == [("delete_user", "7")]
    assert managers[str(blog)].calls == []
    assert created[0] == (str(shop), "shop", config.WP_CLI_FLAGS + config.CLEANUP_WP_FLAGS)


def test_cleanup_counts_list_and_delete_failures(tmp_path):
    site = {"slug": "shop", "webroot": str(tmp_path), "user": "shop", "state": "ENABLED"}

    class BrokenListing(FakeSiteManager):
        def list_users(self, fields=("ID", "user_email")):
            raise CommandError(["wp", "user", "list"], 255, "PHP Fatal error")

    class BrokenDelete(FakeSiteManager):
        def delete_user(self, user_id):
            raise CommandError(["wp", "user", "delete", user_id], 1, "Error")

    summary = cleanup.cleanup_users(
        FakePlatform([site]), user_exists=lambda name: True,
        manager_factory=lambda **kwargs: BrokenListing(),
    )
    assert summary.errors == 1

    summary = cleanup.cleanup_users(
        FakePlatform([site]), user_exists=lambda name: True,
        manager_factory=lambda **kwargs: BrokenDelete(users=[{"ID": "7", "user_email": "migrations@rapyd.cloud"}]),
    )
    assert (summary.deleted, summary.errors) == (0, 1)
