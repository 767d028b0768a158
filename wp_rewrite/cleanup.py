"""Removes the stock migration admin user from every WordPress site on a node."""

import os
import pwd
import re
from dataclasses import dataclass

from . import config, output
from .errors import CommandError
from .wpcli import SiteManager

EMAIL_RE = re.compile(config.MIGRATION_EMAIL_PATTERN, re.IGNORECASE)


@dataclass
class CleanupSummary:
    deleted: int = 0
    not_found: int = 0
    errors: int = 0


def system_user_exists(username):
    try:
        pwd.getpwnam(username)
        return True
    except KeyError:
        return False


def matching_user_ids(users):
    matched = []
    for user in users:
        email = (user.get("user_email") or "").strip().strip('"')
        if EMAIL_RE.match(email):
            output.log_output(f"  Found matching user: ID={user.get('ID')}  email={email}")
            matched.append(user.get("ID"))
    return matched


def cleanup_users(platform, wp_bin=None, user_exists=system_user_exists, manager_factory=SiteManager):
    output.log_output("Fetching site list from rapyd...")
    sites = platform.list_sites()
    output.log_output(f"Found {len(sites)} site(s) to process.")

    summary = CleanupSummary()
    for site in sites:
        slug = site.get("slug")
        webroot = site.get("webroot")
        site_user = site.get("user")
        state = site.get("state")
        output.log_output(f"--- Site: {slug} (user: {site_user}, state: {state}) ---")

        if state != "ENABLED":
            output.print_warning(f"Site '{slug}' is not ENABLED (state={state}). Skipping.")
            continue
        if not webroot or not os.path.isdir(webroot):
            output.print_warning(f"Webroot '{webroot}' does not exist for site '{slug}'. Skipping.")
            summary.errors += 1
            continue
        if not site_user or not user_exists(site_user):
            output.print_warning(f"System user '{site_user}' does not exist for site '{slug}'. Skipping.")
            summary.errors += 1
            continue

        manager = manager_factory(
            site_path=webroot,
            wp_bin=wp_bin,
            user=site_user,
            flags=config.WP_CLI_FLAGS + config.CLEANUP_WP_FLAGS,
        )
        output.log_output(f"Searching for migrations user in '{slug}'...")
        try:
            matched = matching_user_ids(manager.list_users())
        except CommandError as e:
            output.print_warning(f"Failed to list users for site '{slug}'. Skipping. ({e})")
            summary.errors += 1
            continue

        if not matched:
            output.log_output(f"  No matching users found in '{slug}'.")
            summary.not_found += 1
            continue

        for user_id in matched:
            output.log_output(f"  Deleting user ID {user_id} from site '{slug}'...")
            try:
                manager.delete_user(user_id)
            except CommandError as e:
                output.print_error(f"  Failed to delete user ID {user_id} from '{slug}': {e}")
                summary.errors += 1
                continue
            output.log_output(f"  Deleted user ID {user_id} successfully.")
            summary.deleted += 1

    output.log_output("=" * 42)
    output.log_output("Done.")
    output.log_output(f"  Users found & deleted           : {summary.deleted}")
    output.log_output(f"  Sites where user was not found  : {summary.not_found}")
    output.log_output(f"  Sites with errors / skipped     : {summary.errors}")
    output.log_output("=" * 42)
    return summary
