import argparse
import os
import sys
import traceback

from . import config, output, rewriter
from .cleanup import cleanup_users
from .cron import restore_cron_jobs
from .errors import OperationCancelled, PreconditionError, WpRewriteError
from .rapyd import Platform, assign_domain
from .rewriter import RewriteJob, TokenKind
from .site import SiteUpdate, update_site
from .wpcli import SiteManager, find_wp_cli, mu_plugins_disabled


def _prompt_pair(label):
    old = output.prompt(f"Enter old {label}")
    new = output.prompt(f"Enter new {label}")
    return old, new


def _interactive_pairs():
    output.log_output("")
    output.log_output("What would you like to replace?")
    output.log_output("1) Path only")
    output.log_output("2) URL only")
    output.log_output("3) Both path and URL")
    choice = output.prompt("Enter choice (1-3)")
    if choice == "1":
        return _prompt_pair("path"), None
    if choice == "2":
        return None, _prompt_pair("URL")
    if choice == "3":
        return _prompt_pair("path"), _prompt_pair("URL")
    raise PreconditionError("Invalid choice")


def _replace(job, assume_yes, manager):
    label = job.kind.label
    output.print_header(f"{label[0].upper()}{label[1:]} Replacement")
    output.print_info(f"Old {label}: {job.old_token}")
    output.print_info(f"New {label}: {job.new_token}")
    output.print_info(f"Searching for files containing old {label}...")

    candidates = rewriter.scan(job)
    if not candidates:
        output.print_warning(f"No files found containing old {label}")
    else:
        output.print_info(f"Found {len(candidates)} file(s) that will be updated")
        if not assume_yes and not output.confirm(f"Proceed with {label} replacement?"):
            raise OperationCancelled(f"{label[0].upper()}{label[1:]} replacement cancelled")
        result = rewriter.rewrite_files(candidates, job)
        if result.backups:
            output.print_info(f"Backups written to {job.backup_directory}")

    if manager is None:
        return
    if job.kind is TokenKind.PATH:
        with mu_plugins_disabled(job.root_directory):
            rewriter.rewrite_database(job, manager, disable_mu_plugins=True)
    else:
        rewriter.rewrite_database(job, manager)


def cmd_replace(args):
    output.set_log_file(args.log_file or config.default_log_file())
    output.print_header("Path & URL Replacement Tool")

    path_pair = (args.old_path, args.new_path) if args.old_path or args.new_path else None
    url_pair = (args.old_url, args.new_url) if args.old_url or args.new_url else None
    if path_pair is None and url_pair is None:
        path_pair, url_pair = _interactive_pairs()

    # Validate everything before touching any file
    jobs = []
    for pair, kind in ((path_pair, TokenKind.PATH), (url_pair, TokenKind.URL)):
        if pair is None:
            continue
        backup_directory = None
        if args.backup_dir:
            backup_directory = os.path.join(args.backup_dir, f"{config.BACKUP_DIR_NAME}_{kind.value}")
        jobs.append(RewriteJob(
            pair[0] or "", pair[1] or "", kind, args.root,
            max_depth=args.max_depth, backup_directory=backup_directory,
        ))

    manager = None
    if args.database:
        manager = SiteManager(site_path=os.path.abspath(args.root), wp_bin=find_wp_cli(), skip_extras=True)

    for job in jobs:
        _replace(job, args.yes, manager)

    output.print_header("Complete")
    output.print_success("All operations completed successfully")
    return 0


def cmd_update_site(args):
    if args.log_file:
        output.set_log_file(args.log_file)
    update = SiteUpdate(
        site_path=os.path.abspath(args.site_path),
        old_path=args.old_path,
        old_domain=args.old_domain,
        new_domain=args.new_domain,
        backup_root=args.backup_root,
        skip_database=args.skip_db,
        disable_maintenance=args.disable_maintenance,
        flush_keydb=args.flush_keydb,
        keydb_socket=args.keydb_socket,
        check_url=not args.no_check,
        replace_url=args.replace_url,
    )
    if not os.path.isdir(update.site_path):
        raise PreconditionError(f"Site path '{update.site_path}' does not exist or is not a directory.")
    manager = SiteManager(site_path=update.site_path, wp_bin=find_wp_cli(), user=args.wp_user, skip_extras=True)
    report = update_site(update, manager)

    if report.warnings:
        output.print_warning(f"Site update finished with {len(report.warnings)} warning(s); review them above")
    else:
        output.print_success("Site update completed")
    return 0


def cmd_cron(args):
    restore_cron_jobs(
        args.source, args.dest, args.old_path, args.new_path,
        old_domain=args.old_domain, new_domain=args.new_domain, owner=args.owner,
    )
    return 0


def cmd_cleanup_users(args):
    cleanup_users(Platform(), wp_bin=find_wp_cli())
    return 0


def cmd_set_domain(args):
    assign_domain(Platform(), args.domain, args.slug, make_primary=not args.no_primary)
    return 0


def build_parser():
    parser = argparse.ArgumentParser(prog="wp-rewrite", description="WordPress site migration helpers: path/URL rewriting, cleanup, domains.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p = subparsers.add_parser("replace", help="Replace old paths and URLs in files across the webroot.")
    p.add_argument("--root", default=os.getcwd(), help="Directory to scan (default: current directory).")
    p.add_argument("--old-path")
    p.add_argument("--new-path")
    p.add_argument("--old-url")
    p.add_argument("--new-url")
    p.add_argument("--backup-dir", help="Where file backups are written (default: <root>/../temp).")
    p.add_argument("--max-depth", type=int, default=config.MAX_DEPTH)
    p.add_argument("--database", action="store_true", help="Also run wp search-replace on all tables.")
    p.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation.")
    p.add_argument("--log-file")
    p.set_defaults(func=cmd_replace)

    p = subparsers.add_parser("update-site", help="Rewrite path and URL of a restored site in files and database.")
    p.add_argument("--site-path", required=True)
    p.add_argument("--old-path")
    p.add_argument("--old-domain")
    p.add_argument("--new-domain")
    p.add_argument(
        "--replace-url", action="store_true",
        help=f"Rewrite the old domain even when it is not a {config.RAPYDAPPS_DOMAIN} domain.",
    )
    p.add_argument("--backup-root")
    p.add_argument("--wp-user", help="Run wp-cli as this system user.")
    p.add_argument("--skip-db", action="store_true")
    p.add_argument("--disable-maintenance", action="store_true")
    p.add_argument("--flush-keydb", action="store_true")
    p.add_argument("--keydb-socket", default=config.KEYDB_SOCKET)
    p.add_argument("--no-check", action="store_true", help="Skip the HTTP check of the new URL.")
    p.add_argument("--log-file")
    p.set_defaults(func=cmd_update_site)

    p = subparsers.add_parser("cron", help="Restore an exported crontab with rewritten paths.")
    p.add_argument("--source", required=True)
    p.add_argument("--dest", required=True)
    p.add_argument("--old-path", required=True)
    p.add_argument("--new-path", required=True)
    p.add_argument("--old-domain")
    p.add_argument("--new-domain")
    p.add_argument("--owner")
    p.set_defaults(func=cmd_cron)

    p = subparsers.add_parser("cleanup-users", help="Delete migrations@rapyd.cloud users from every site.")
    p.set_defaults(func=cmd_cleanup_users)

    p = subparsers.add_parser("set-domain", help="Assign a domain to a site and make it primary.")
    p.add_argument("--slug", required=True)
    p.add_argument("--domain", required=True)
    p.add_argument("--no-primary", action="store_true")
    p.set_defaults(func=cmd_set_domain)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except OperationCancelled as e:
        output.print_warning(str(e))
        return 1
    except WpRewriteError as e:
        output.print_error(str(e))
        return 1
    except KeyboardInterrupt:
        output.print_error("Interrupted. Files already rewritten keep their backups; re-run to finish.")
        return 1
    except OSError as e:
        output.print_error(f"Unexpected error: {e}")
        traceback.print_exc(file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
