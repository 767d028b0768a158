import requests

from . import config, output


def check_site(url, timeout=config.HTTP_TIMEOUT):
    """Requests the site's front page; returns the HTTP status code or None."""
    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"
    output.print_info(f"Checking {url}...")
    try:
        response = requests.get(url, timeout=timeout, allow_redirects=True)
    except requests.exceptions.RequestException as e:
        output.print_warning(f"Site {url} is not reachable: {e}")
        return None

    if response.ok:
        output.print_success(f"Site {url} responded with HTTP {response.status_code}")
    else:
        output.print_warning(f"Site {url} responded with HTTP {response.status_code}")
    return response.status_code
