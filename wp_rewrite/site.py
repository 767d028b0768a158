"""Post-restore site update: path and URL rewrite, maintenance mode, caches."""

import os
from dataclasses import dataclass, field

from . import config, output, rewriter
from .check import check_site
from .commands import run_command, succeeded
from .errors import CommandError
from .rewriter import RewriteJob, TokenKind
from .wpcli import mu_plugins_disabled

MAINTENANCE_PLUGIN = "simple-maintenance"
BUDDYBOSS_MAINTENANCE_OPTIONS = (
    ("bbapp_settings", "app_maintenance_mode", "BuddyBoss App maintenance deactivated"),
    ("buddyboss_theme_options", "maintenance_mode", "BuddyBoss Theme maintenance mode deactivated"),
)


@dataclass
class SiteUpdate:
    site_path: str
    old_path: str = None
    old_domain: str = None
    new_domain: str = None
    backup_root: str = None
    skip_database: bool = False
    disable_maintenance: bool = False
    flush_keydb: bool = False
    keydb_socket: str = config.KEYDB_SOCKET
    check_url: bool = True
    replace_url: bool = False


@dataclass
class SiteUpdateReport:
    path_result: rewriter.RewriteResult = None
    path_stats: rewriter.RewriteStats = None
    url_result: rewriter.RewriteResult = None
    url_stats: rewriter.RewriteStats = None
    status_code: int = None
    warnings: list = field(default_factory=list)


def _backup_directory(update, kind):
    if not update.backup_root:
        return None
    return os.path.join(update.backup_root, f"{config.BACKUP_DIR_NAME}_{kind.value}")


def update_wp_path(update, manager, report):
    output.print_header("Updating WordPress path in files and database")
    job = RewriteJob(
        update.old_path, update.site_path, TokenKind.PATH, update.site_path,
        backup_directory=_backup_directory(update, TokenKind.PATH),
    )
    report.path_result = rewriter.run(job)
    if not update.skip_database:
        with mu_plugins_disabled(update.site_path):
            report.path_stats = rewriter.rewrite_database(job, manager, disable_mu_plugins=True)
        report.warnings += report.path_stats.warnings
    output.print_success("WordPress path updated")


def update_site_url(update, manager, report):
    old_domain = rewriter.strip_scheme(update.old_domain)
    new_domain = rewriter.strip_scheme(update.new_domain)
    if config.RAPYDAPPS_DOMAIN not in old_domain and not update.replace_url:
        output.print_info(f"Source URL [{old_domain}] is not a {config.RAPYDAPPS_DOMAIN} domain, keeping it")
        return

    output.print_header(f"Updating site URL in files and database to [{new_domain}]")
    job = RewriteJob(
        old_domain, new_domain, TokenKind.URL, update.site_path,
        backup_directory=_backup_directory(update, TokenKind.URL),
    )
    report.url_result = rewriter.run(job)
    if update.skip_database:
        return

    report.url_stats = rewriter.rewrite_database(job, manager)
    report.warnings += report.url_stats.warnings

    if manager.plugin_is_installed("elementor") and manager.plugin_is_active("elementor"):
        try:
            manager.elementor_replace_urls(f"https://{old_domain}", f"https://{new_domain}")
            output.print_success("Elementor URLs replaced")
        except CommandError as e:
            report.warnings.append(str(e))
            output.print_warning(f"Elementor replace-urls failed: {e}")

    _flush_cache(manager, report.warnings)
    output.print_success("Site URL updated")


def disable_maintenance_modes(manager):
    output.print_info("Disabling maintenance mode(s)...")
    try:
        if manager.plugin_is_installed(MAINTENANCE_PLUGIN):
            if manager.plugin_is_active(MAINTENANCE_PLUGIN):
                manager.plugin_deactivate(MAINTENANCE_PLUGIN)
            manager.plugin_uninstall(MAINTENANCE_PLUGIN)
            output.log_output("Simple Maintenance plugin deactivated and uninstalled")
        else:
            for option, key, message in BUDDYBOSS_MAINTENANCE_OPTIONS:
                if manager.option_pluck(option, key) is not None:
                    manager.option_patch_update(option, key, 0)
                    output.log_output(message)
    except CommandError as e:
        output.print_warning(f"Failed to disable maintenance mode: {e}")
        return False
    output.print_success("Maintenance mode(s) successfully disabled")
    return True


def _flush_cache(manager, warnings):
    try:
        manager.cache_flush()
    except CommandError as e:
        warnings.append(str(e))
        output.print_warning(f"Cache flush failed: {e}")
        return False
    output.log_output("Object cache flushed")
    return True


def flush_cache_restore_keydb(manager, keydb_socket=config.KEYDB_SOCKET, warnings=None):
    output.print_info("Flushing cache and restoring KeyDB integration...")
    if warnings is None:
        warnings = []
    _flush_cache(manager, warnings)
    try:
        manager.config_set("WP_REDIS_DISABLED", "false", raw=True)
        output.log_output("KeyDB integration re-enabled")
    except CommandError as e:
        warnings.append(str(e))
        output.print_warning(f"Failed to re-enable KeyDB integration: {e}")
    if succeeded(run_command([config.KEYDB_CLI_BIN, "-s", keydb_socket, "flushall"], check=False)):
        output.log_output("KeyDB flushed")
        output.print_success("KeyDB integration restored and cache flushed")
        return True
    output.print_warning("KeyDB flush failed")
    return False


def update_site(update, manager):
    """Runs the restore-time update sequence. Collaborator failures end up in report.warnings."""
    report = SiteUpdateReport()
    if update.old_path:
        update_wp_path(update, manager, report)
    if update.old_domain and update.new_domain:
        update_site_url(update, manager, report)
    if update.disable_maintenance:
        disable_maintenance_modes(manager)
    if update.flush_keydb:
        flush_cache_restore_keydb(manager, update.keydb_socket, report.warnings)
    if update.check_url and update.new_domain:
        report.status_code = check_site(update.new_domain)
    return report
