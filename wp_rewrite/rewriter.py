"""Path and URL rewriting across a site's files and database.

Files are matched and rewritten with literal byte substitution, so tokens such
as ``/var/www/old`` or ``old.example.com`` are never treated as patterns. Every
file is copied to the backup directory before it is written.
"""

import enum
import fnmatch
import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime

from . import config, output
from .errors import CommandError, PreconditionError
from .wpcli import Scope


class TokenKind(enum.Enum):
    PATH = "path"
    URL = "url"

    @property
    def label(self):
        return "path" if self is TokenKind.PATH else "URL"


def _strip_trailing_slash(path):
    # A bare "/" stays as is
    return path.rstrip("/") or path


@dataclass
class RewriteJob:
    old_token: str
    new_token: str
    kind: TokenKind
    root_directory: str
    file_filters: tuple = config.FILE_FILTERS
    exclude_filters: tuple = config.EXCLUDE_FILTERS
    max_depth: int = config.MAX_DEPTH
    backup_directory: str = None

    def __post_init__(self):
        label = self.kind.label
        if self.kind is TokenKind.PATH:
            # "old/" must match at directory boundaries, so tokens end without a slash
            self.old_token = _strip_trailing_slash(self.old_token)
            self.new_token = _strip_trailing_slash(self.new_token)
        if not self.old_token:
            raise PreconditionError(f"Old {label} cannot be empty")
        if not self.new_token:
            raise PreconditionError(f"New {label} cannot be empty")
        if self.old_token == self.new_token:
            raise PreconditionError(f"Old and new {label}s cannot be identical")
        self.root_directory = os.path.abspath(self.root_directory)
        if self.backup_directory is None:
            # Sits next to the webroot, like <app>/temp next to <app>/public
            self.backup_directory = os.path.join(
                os.path.dirname(self.root_directory), "temp",
                f"{config.BACKUP_DIR_NAME}_{self.kind.value}",
            )
        self.backup_directory = os.path.abspath(self.backup_directory)


@dataclass
class CandidateFile:
    path: str
    relative_path: str


@dataclass
class BackupRecord:
    original_path: str
    backup_path: str
    timestamp: str


@dataclass
class RewriteResult:
    files_scanned: int = 0
    modified_paths: list = field(default_factory=list)
    backups: list = field(default_factory=list)
    failures: list = field(default_factory=list)

    @property
    def files_modified(self):
        return len(self.modified_paths)


@dataclass
class RewriteStats:
    pairs: list = field(default_factory=list)
    replacements: int = 0
    warnings: list = field(default_factory=list)


def _matches(value, patterns):
    return any(fnmatch.fnmatchcase(value, pattern) for pattern in patterns)


def walk_files(job):
    """Yields CandidateFile entries for every file passing the job's filters.

    Mirrors ``find ROOT -maxdepth N -type f -name ... ! -path ...``: names are
    matched against file_filters, ``./``-prefixed relative paths against
    exclude_filters. Entries are visited in sorted order.
    """
    root = job.root_directory

    def skipped(error):
        output.print_warning(f"Skipping unreadable directory {error.filename}: {error.strerror}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=skipped):
        rel_dir = os.path.relpath(dirpath, root)
        depth = 0 if rel_dir == os.curdir else len(rel_dir.split(os.sep))
        dirnames.sort()
        filenames.sort()
        dirnames[:] = [d for d in dirnames if os.path.join(dirpath, d) != job.backup_directory]
        if depth + 2 > job.max_depth:
            dirnames[:] = []
        if depth + 1 > job.max_depth:
            continue
        for name in filenames:
            path = os.path.join(dirpath, name)
            if os.path.islink(path) or not os.path.isfile(path):
                continue
            if not _matches(name, job.file_filters):
                continue
            relative_path = os.path.relpath(path, root)
            if _matches("./" + relative_path.replace(os.sep, "/"), job.exclude_filters):
                continue
            yield CandidateFile(path=path, relative_path=relative_path)


def _contains(path, token):
    try:
        with open(path, "rb") as f:
            return token in f.read()
    except OSError as e:
        output.print_warning(f"Cannot read {path}: {e}")
        return False


def _check_root(job):
    root = job.root_directory
    if not os.path.isdir(root):
        raise PreconditionError(f"Directory '{root}' does not exist or is not a directory.")
    if not os.access(root, os.R_OK | os.X_OK):
        raise PreconditionError(f"Directory '{root}' is not readable.")


def _scan(job):
    _check_root(job)
    token = job.old_token.encode("utf-8")
    scanned = 0
    candidates = []
    for entry in walk_files(job):
        scanned += 1
        if _contains(entry.path, token):
            candidates.append(entry)
    return scanned, candidates


def scan(job):
    """Returns the files under the job's root that contain the old token."""
    return _scan(job)[1]


def rewrite_text(content, old, new, kind):
    """Literal substitution of ``old`` with ``new`` in a str or bytes value.

    For paths the slash-suffixed form is replaced first so ``old/`` and a bare
    ``old`` both end up on ``new`` without a doubled separator.
    """
    if kind is TokenKind.PATH:
        separator = b"/" if isinstance(content, bytes) else "/"
        content = content.replace(old + separator, new + separator)
    return content.replace(old, new)


def backup_file(candidate, job, timestamp):
    backup_path = os.path.join(
        job.backup_directory,
        f"{candidate.relative_path}.{timestamp}{config.BACKUP_SUFFIX}",
    )
    os.makedirs(os.path.dirname(backup_path), exist_ok=True)
    shutil.copy2(candidate.path, backup_path)
    return BackupRecord(original_path=candidate.path, backup_path=backup_path, timestamp=timestamp)


def restore_backups(records):
    """Copies backups over their originals, newest record last wins."""
    restored = 0
    for record in records:
        try:
            shutil.copy2(record.backup_path, record.original_path)
            restored += 1
        except OSError as e:
            output.print_warning(f"Cannot restore {record.original_path} from {record.backup_path}: {e}")
    return restored


def rewrite_files(candidates, job):
    old = job.old_token.encode("utf-8")
    new = job.new_token.encode("utf-8")
    label = job.kind.label
    timestamp = datetime.now().strftime(config.BACKUP_TIMESTAMP_FORMAT)
    result = RewriteResult(files_scanned=len(candidates))

    for candidate in candidates:
        try:
            with open(candidate.path, "rb") as f:
                content = f.read()
        except OSError as e:
            result.failures.append((candidate.path, f"read failed: {e}"))
            output.print_warning(f"Skipping {candidate.path}: cannot read file ({e})")
            continue
        if old not in content:
            # Already rewritten by an earlier run
            continue

        try:
            record = backup_file(candidate, job, timestamp)
        except OSError as e:
            result.failures.append((candidate.path, f"backup failed: {e}"))
            output.print_warning(f"Skipping {candidate.path}: backup failed ({e})")
            continue
        result.backups.append(record)

        try:
            with open(candidate.path, "wb") as f:
                f.write(rewrite_text(content, old, new, job.kind))
        except OSError as e:
            result.failures.append((candidate.path, f"write failed: {e}"))
            output.print_warning(f"Failed to update {candidate.path} ({e}); original kept in {record.backup_path}")
            continue

        result.modified_paths.append(candidate.path)
        output.log_output(f"Updated {label} in: {candidate.path}")

    output.log_output(f"Modified {result.files_modified} file(s) with new {label}")
    if result.failures:
        output.print_warning(f"{len(result.failures)} file(s) could not be updated")
    return result


def run(job):
    """Scans and rewrites in one go."""
    output.print_info(f"Searching for files containing old {job.kind.label}...")
    scanned, candidates = _scan(job)
    if not candidates:
        output.log_output(f"No files found containing old {job.kind.label}")
        return RewriteResult(files_scanned=scanned)
    result = rewrite_files(candidates, job)
    result.files_scanned = scanned
    return result


def strip_scheme(url):
    for scheme in ("https://", "http://"):
        if url.startswith(scheme):
            url = url[len(scheme):]
            break
    return url.rstrip("/")


def paired_urls(old_domain, new_domain, include_www=False):
    """(old, new) URL pairs for the database pass; every old scheme maps to https."""
    old_host = strip_scheme(old_domain)
    new_url = f"https://{strip_scheme(new_domain)}"
    hosts = [old_host]
    if include_www:
        bare = old_host[4:] if old_host.startswith("www.") else old_host
        hosts = [bare, f"www.{bare}"]
    pairs = []
    for host in hosts:
        for scheme in ("https", "http"):
            pairs.append((f"{scheme}://{host}", new_url))
    return pairs


def rewrite_database(job, site_manager, pairs=None, disable_mu_plugins=False):
    """Runs the site manager's search-replace for the job's token pairs.

    Failures are collected as warnings; file changes are never rolled back.
    """
    if pairs is None:
        if job.kind is TokenKind.PATH:
            pairs = [(job.old_token, job.new_token)]
        else:
            pairs = paired_urls(job.old_token, job.new_token)
    stats = RewriteStats(pairs=list(pairs))

    for old, new in stats.pairs:
        if old == new:
            continue
        output.print_info(f"Replacing '{old}' -> '{new}' in database...")
        try:
            stats.replacements += site_manager.search_replace(
                old, new, scope=Scope.ALL_TABLES, disable_mu_plugins=disable_mu_plugins,
            )
        except CommandError as e:
            stats.warnings.append(str(e))
            output.print_warning(f"Database search-replace '{old}' -> '{new}' failed: {e}")

    if stats.warnings:
        output.print_warning(f"Database {job.kind.label} update finished with {len(stats.warnings)} warning(s)")
    else:
        output.print_success(f"Database {job.kind.label} update finished ({stats.replacements} replacement(s))")
    return stats
