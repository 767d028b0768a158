import subprocess

import pytest

from wp_rewrite import output
from wp_rewrite.errors import CommandError
from wp_rewrite.wpcli import Scope


@pytest.fixture(autouse=True)
def no_log_file(monkeypatch):
    monkeypatch.setattr(output, "LOG_FILE", None)


def completed(args, returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr=stderr)


class FakeSiteManager:
    def __init__(self, fail_on=(), installed=(), active=(), options=None, users=None, replacements=3):
        self.fail_on = set(fail_on)
        self.installed = set(installed)
        self.active = set(active)
        self.options = dict(options or {})
        self.users = list(users or [])
        self.replacements = replacements
        self.calls = []

    def search_replace(self, old, new, scope=Scope.ALL_TABLES, disable_mu_plugins=False):
        self.calls.append(("search_replace", old, new, scope, disable_mu_plugins))
        if old in self.fail_on:
            raise CommandError(["wp", "search-replace", old, new], 1, "Error: Table is broken")
        return self.replacements

    def plugin_is_installed(self, plugin):
        return plugin in self.installed

    def plugin_is_active(self, plugin):
        return plugin in self.active

    def plugin_deactivate(self, plugin):
        self.calls.append(("plugin_deactivate", plugin))

    def plugin_uninstall(self, plugin):
        self.calls.append(("plugin_uninstall", plugin))

    def option_pluck(self, option, key):
        return self.options.get((option, key))

    def option_patch_update(self, option, key, value):
        self.calls.append(("option_patch_update", option, key, value))

    def elementor_replace_urls(self, old, new):
        self.calls.append(("elementor_replace_urls", old, new))

    def cache_flush(self):
        self.calls.append(("cache_flush",))
        return True

    def config_set(self, name, value, raw=False):
        self.calls.append(("config_set", name, value, raw))

    def list_users(self, fields=("ID", "user_email")):
        return list(self.users)

    def delete_user(self, user_id):
        self.calls.append(("delete_user", user_id))


@pytest.fixture
def site_manager():
    return FakeSiteManager()


@pytest.fixture
def webroot(tmp_path):
    root = tmp_path / "app" / "public"
    root.mkdir(parents=True)
    return root


def write(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
