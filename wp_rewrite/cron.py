import os
import shutil

from . import output
from .rewriter import TokenKind, rewrite_text


def restore_cron_jobs(source, dest, old_path, new_path, old_domain=None, new_domain=None, owner=None):
    """Installs an exported crontab with the site path (and optionally domain) rewritten.

    Returns False when there was nothing to restore.
    """
    output.print_info("Restoring cron jobs...")
    if not os.path.isfile(source):
        output.print_warning("Cron jobs file not found, skipping")
        return False
    if os.path.getsize(source) == 0:
        output.print_warning("Cron jobs file is empty, skipping")
        return False

    with open(source, "r", encoding="utf-8") as f:
        content = f.read()

    content = rewrite_text(content, old_path, new_path, TokenKind.PATH)
    if old_domain and new_domain:
        content = rewrite_text(content, old_domain, new_domain, TokenKind.URL)
    if not content.endswith("\n"):
        content += "\n"

    with open(dest, "w", encoding="utf-8") as f:
        f.write(content)
    if owner:
        shutil.chown(dest, user=owner, group=owner)
        output.log_output(f"Cron jobs restored for user: {owner}")

    output.print_success("Cron jobs restored successfully")
    return True
