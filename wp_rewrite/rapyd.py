import json
import socket

from . import config, output
from .commands import run_command
from .errors import CommandError


def resolves(hostname):
    try:
        return bool(socket.getaddrinfo(hostname, None))
    except (socket.gaierror, UnicodeError):
        return False


class Platform:
    """Site and domain operations of the ``rapyd`` platform CLI."""

    def __init__(self, rapyd_bin=None):
        self.rapyd_bin = rapyd_bin or config.RAPYD_BIN

    def run(self, *args):
        command = [self.rapyd_bin] + list(args)
        result = run_command(command, check=False)
        if result is None:
            raise CommandError(command)
        if result.returncode != 0:
            raise CommandError(command, result.returncode, result.stderr)
        return result

    def _json(self, *args):
        result = self.run(*args)
        try:
            return json.loads(result.stdout or "[]")
        except json.JSONDecodeError:
            raise CommandError([self.rapyd_bin] + list(args), stderr=f"invalid JSON output: {result.stdout!r}")

    def list_sites(self):
        return self._json("site", "list", "--format=json")

    def list_domains(self):
        return self._json("domain", "list", "--format=json")

    def add_domain(self, domain, slug, www=False):
        args = ["domain", "add", "--domain", domain]
        if www:
            args.append("--www")
        self.run(*args, "--slug", slug)

    def set_primary(self, domain_id):
        self.run("domain", "set-primary", "--domain_id", str(domain_id))

    def find_domain_id(self, domain, slug=None):
        for entry in self.list_domains():
            if entry.get("domain") != domain:
                continue
            if slug is not None and entry.get("site_slug") != slug:
                continue
            return entry.get("id")
        return None


def assign_domain(platform, domain, slug, make_primary=True):
    """Adds a domain (plus www when it resolves) to a site and optionally makes it primary.

    Returns the list of hostnames assigned. Failures are reported as warnings.
    """
    if domain.endswith(config.RAPYDAPPS_DOMAIN):
        output.print_info(f"Skipping domain assignment ({config.RAPYDAPPS_DOMAIN} domain detected)")
        return []

    www = resolves(f"www.{domain}")
    try:
        platform.add_domain(domain, slug, www=www)
    except CommandError as e:
        output.print_warning(f"Failed to assign domain: {domain} ({e})")
        return []
    assigned = [domain, f"www.{domain}"] if www else [domain]
    output.print_success(f"Domain(s) [{', '.join(assigned)}] successfully assigned")

    if make_primary:
        try:
            domain_id = platform.find_domain_id(domain, slug)
            if domain_id is None:
                output.print_warning(f"Domain {domain} not found in domain list, skipping primary domain change")
            else:
                platform.set_primary(domain_id)
                output.print_success(f"Primary domain set: {domain}")
        except CommandError as e:
            output.print_warning(f"Failed to set primary domain: {e}")
    return assigned
