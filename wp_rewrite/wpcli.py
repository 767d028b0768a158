import contextlib
import csv
import enum
import io
import os
import re
import shutil

from . import config, output
from .commands import is_benign_failure, run_command
from .errors import CommandError, PreconditionError

REPLACEMENTS_RE = re.compile(r"Made (\d+) replacements?")


class Scope(enum.Enum):
    REGISTERED = ""
    ALL_TABLES = "--all-tables"
    ALL_TABLES_WITH_PREFIX = "--all-tables-with-prefix"


def find_wp_cli():
    """Locates the WP-CLI binary: PATH first, then the usual direct install path."""
    found_wp_cli_path = shutil.which(config.WP_CLI_BIN)
    if found_wp_cli_path:
        return found_wp_cli_path

    output.print_info(f"WP-CLI ('{config.WP_CLI_BIN}') not found in PATH.")
    common_direct_path = config.WP_CLI_FALLBACK_PATH
    if os.path.exists(common_direct_path) and os.access(common_direct_path, os.X_OK):
        output.print_info(f"Found WP-CLI at {common_direct_path}. Using that path.")
        return common_direct_path
    raise PreconditionError(
        f"WP-CLI ('{config.WP_CLI_BIN}') is not installed or not executable. "
        f"Tried PATH and '{common_direct_path}'."
    )


@contextlib.contextmanager
def mu_plugins_disabled(site_path):
    """Moves wp-content/mu-plugins to <app>/temp/mu-plugins.disabled for the duration of the block."""
    mu_dir = os.path.join(site_path, config.MU_PLUGINS_DIR)
    mu_dir_tmp = os.path.join(os.path.dirname(os.path.abspath(site_path)), config.MU_PLUGINS_TMP_DIR)
    moved = False
    if os.path.isdir(mu_dir) and not os.path.exists(mu_dir_tmp):
        os.makedirs(os.path.dirname(mu_dir_tmp), exist_ok=True)
        shutil.move(mu_dir, mu_dir_tmp)
        moved = True
        output.print_info("Must-use plugins temporarily disabled")
    try:
        yield moved
    finally:
        if moved and os.path.isdir(mu_dir_tmp) and not os.path.exists(mu_dir):
            shutil.move(mu_dir_tmp, mu_dir)
            output.print_info("Must-use plugins re-enabled")


class SiteManager:
    """Thin typed wrapper over ``wp`` for one WordPress install."""

    def __init__(self, site_path=None, wp_bin=None, user=None, flags=None, skip_extras=False):
        self.site_path = site_path
        self.wp_bin = wp_bin or config.WP_CLI_BIN
        self.user = user
        self.flags = list(config.WP_CLI_FLAGS if flags is None else flags)
        if skip_extras:
            self.flags += config.WP_CLI_SKIP_FLAGS

    def command(self, *args):
        command = []
        if self.user:
            command += ["sudo", "-u", self.user, "--"]
        command.append(self.wp_bin)
        command += list(args)
        if self.site_path:
            command.append(f"--path={self.site_path}")
        return command + self.flags

    def run(self, *args, check=True, env=None):
        command = self.command(*args)
        kwargs = {}
        if env:
            kwargs["env"] = dict(os.environ, **env)
        result = run_command(command, check=False, **kwargs)
        if result is None:
            raise CommandError(command)
        if check and result.returncode != 0:
            raise CommandError(command, result.returncode, result.stderr)
        return result

    def _query(self, *args):
        try:
            return self.run(*args, check=False).returncode == 0
        except CommandError:
            return False

    # --- database ---

    def search_replace(self, old, new, scope=Scope.ALL_TABLES, disable_mu_plugins=False):
        """Runs ``wp search-replace`` and returns the number of replacements made."""
        args = ["search-replace", old, new]
        if scope.value:
            args.append(scope.value)
        env = {"WP_CLI_DISABLE_MU_PLUGINS": "1"} if disable_mu_plugins else None
        result = self.run(*args, check=False, env=env)
        stdout = result.stdout or ""
        if result.returncode != 0:
            if is_benign_failure(result.args, stdout, result.stderr or ""):
                return 0
            raise CommandError(result.args, result.returncode, result.stderr)
        match = REPLACEMENTS_RE.search(stdout)
        return int(match.group(1)) if match else 0

    # --- plugins and options ---

    def plugin_is_installed(self, plugin):
        return self._query("plugin", "is-installed", plugin)

    def plugin_is_active(self, plugin):
        return self._query("plugin", "is-active", plugin)

    def plugin_deactivate(self, plugin):
        self.run("plugin", "deactivate", plugin)

    def plugin_uninstall(self, plugin):
        self.run("plugin", "uninstall", plugin)

    def option_pluck(self, option, key):
        try:
            result = self.run("option", "pluck", option, key, check=False)
        except CommandError:
            return None
        if result.returncode != 0:
            return None
        return (result.stdout or "").strip()

    def option_patch_update(self, option, key, value):
        self.run("option", "patch", "update", option, key, str(value))

    def elementor_replace_urls(self, old, new):
        self.run("elementor", "replace-urls", old, new)

    # --- cache and config ---

    def cache_flush(self):
        result = self.run("cache", "flush", check=False)
        return result.returncode == 0

    def config_set(self, name, value, raw=False):
        args = ["config", "set", name, str(value)]
        if raw:
            args.append("--raw")
        self.run(*args)

    # --- users ---

    def list_users(self, fields=("ID", "user_email")):
        result = self.run("user", "list", f"--fields={','.join(fields)}", "--format=csv")
        return list(csv.DictReader(io.StringIO(result.stdout or "")))

    def delete_user(self, user_id):
        self.run("user", "delete", str(user_id), "--yes")
