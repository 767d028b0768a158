import builtins
import os

import pytest

from conftest import FakeSiteManager, write
from wp_rewrite import cli
from wp_rewrite.wpcli import Scope

OLD_PATH = "/var/www/old"
NEW_PATH = "/var/www/new"


@pytest.fixture
def answers(monkeypatch):
    queue = []
    monkeypatch.setattr(builtins, "input", lambda prompt="": queue.pop(0))
    return queue


def replace_args(root, tmp_path, *extra):
    return ["replace", "--root", str(root), "--log-file", str(tmp_path / "replace.log"), *extra]


def test_replace_path_non_interactive(webroot, tmp_path):
    target = write(webroot / "wp-config.php", f"define('ABSPATH', '{OLD_PATH}/');\n")

    code = cli.main(replace_args(webroot, tmp_path, "--old-path", OLD_PATH, "--new-path", NEW_PATH, "--yes"))

    assert code == 0
    assert target.read_text() == f"define('ABSPATH', '{NEW_PATH}/');\n"
    log = (tmp_path / "replace.log").read_text()
    assert f"Updated path in: {target}" in log
    assert "Modified 1 file(s) with new path" in log


def test_replace_identical_tokens_exit_1(webroot, tmp_path, capsys):
    target = write(webroot / "wp-config.php", OLD_PATH)

    code = cli.main(replace_args(webroot, tmp_path, "--old-path", OLD_PATH, "--new-path", OLD_PATH, "--yes"))

    assert code == 1
    assert "cannot be identical" in capsys.readouterr().err
    assert target.read_text() == OLD_PATH


def test_replace_missing_root_exit_1(tmp_path):
    code = cli.main(replace_args(tmp_path / "missing", tmp_path, "--old-path", OLD_PATH, "--new-path", NEW_PATH, "--yes"))

    assert code == 1


def test_replace_declined_confirmation(webroot, tmp_path, answers):
    target = write(webroot / "wp-config.php", OLD_PATH)
    answers.append("n")

    code = cli.main(replace_args(webroot, tmp_path, "--old-path", OLD_PATH, "--new-path", NEW_PATH))

    assert code == 1
    assert target.read_text() == OLD_PATH


def test_replace_interactive_both(webroot, tmp_path, answers):
    target = write(webroot / "wp-config.php", f"{OLD_PATH}/wp-content https://old.example.com\n")
    answers.extend(["3", OLD_PATH, NEW_PATH, "old.example.com", "new.example.com", "y", "y"])

    code = cli.main(replace_args(webroot, tmp_path))

    assert code == 0
    assert target.read_text() == f"{NEW_PATH}/wp-content https://new.example.com\n"


def test_replace_interactive_invalid_choice(webroot, tmp_path, answers):
    answers.append("4")

    assert cli.main(replace_args(webroot, tmp_path)) == 1


def test_replace_validates_all_pairs_before_rewriting(webroot, tmp_path):
    target = write(webroot / "wp-config.php", OLD_PATH)

    code = cli.main(replace_args(
        webroot, tmp_path,
        "--old-path", OLD_PATH, "--new-path", NEW_PATH,
        "--old-url", "a.example.com", "--new-url", "a.example.com", "--yes",
    ))

    assert code == 1
    assert target.read_text() == OLD_PATH


def test_cron_command(tmp_path):
    source = tmp_path / "cron_jobs.txt"
    dest = tmp_path / "crontab"
    source.write_text(f"* * * * * php {OLD_PATH}/wp-cron.php")

    code = cli.main(["cron", "--source", str(source), "--dest", str(dest), "--old-path", OLD_PATH, "--new-path", NEW_PATH])

    assert code == 0
    assert dest.read_text() == f"* * * * * php {NEW_PATH}/wp-cron.php\n"


def test_update_site_missing_path(tmp_path):
    assert cli.main(["update-site", "--site-path", str(tmp_path / "missing"), "--old-path", OLD_PATH]) == 1


class RecordingSiteManager(FakeSiteManager):
    instances = []

    def __init__(self, site_path=None, wp_bin=None, user=None, skip_extras=False):
        super().__init__()
        self.site_path = site_path
        self.mu_present = []
        RecordingSiteManager.instances.append(self)

    def search_replace(self, old, new, scope=Scope.ALL_TABLES, disable_mu_plugins=False):
        self.mu_present.append(os.path.isdir(os.path.join(self.site_path, "wp-content", "mu-plugins")))
        return super().search_replace(old, new, scope=scope, disable_mu_plugins=disable_mu_plugins)


def test_replace_database_moves_mu_plugins_aside_for_paths(monkeypatch, webroot, tmp_path):
    write(webroot / "wp-config.php", f"define('ABSPATH', '{OLD_PATH}/');\n")
    write(webroot / "wp-content" / "mu-plugins" / "loader.php", "<?php")
    RecordingSiteManager.instances = []
    monkeypatch.setattr(cli, "find_wp_cli", lambda: "wp")
    monkeypatch.setattr(cli, "SiteManager", RecordingSiteManager)

    code = cli.main(replace_args(
        webroot, tmp_path,
        "--old-path", OLD_PATH, "--new-path", NEW_PATH,
        "--old-url", "old.example.com", "--new-url", "new.example.com",
        "--database", "--yes",
    ))

    assert code == 0
    manager = RecordingSiteManager.instances[0]
    assert manager.mu_present == [False, True, True]
    assert [call[4] for call in manager.calls] == [True, False, False]
    assert (webroot / "wp-content" / "mu-plugins" / "loader.php").exists()


def test_update_site_replace_url_opt_in(monkeypatch, webroot):
    target = write(webroot / "wp-config.php", "define('WP_HOME', 'https://old.example.com');\n")
    monkeypatch.setattr(cli, "find_wp_cli", lambda: "wp")
    monkeypatch.setattr(cli, "SiteManager", RecordingSiteManager)
    args = ["update-site", "--site-path", str(webroot), "--old-domain", "old.example.com", "--new-domain", "new.example.com", "--skip-db", "--no-check"]

    assert cli.main(args) == 0
    assert "old.example.com" in target.read_text()

    assert cli.main([*args, "--replace-url"]) == 0
    assert target.read_text() == "define('WP_HOME', 'https://new.example.com');\n"
