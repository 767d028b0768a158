import subprocess
import sys

from . import output


def _subcommand(command, *names):
    """True if the command line contains the given wp-cli subcommand sequence."""
    size = len(names)
    return any(tuple(command[i:i + size]) == names for i in range(len(command) - size + 1))


def is_benign_failure(command, stdout_output, stderr_output):
    stderr_lower = stderr_output.lower()
    is_search_replace_no_change = (
        _subcommand(command, "search-replace") and
        ("No tables found to replace" in stderr_output or "No values changed" in stderr_output or "0 replacements" in stdout_output)
    )
    is_cache_flush_not_found = (
        _subcommand(command, "cache", "flush") and
        ("does not exist" in stderr_lower or "isn't an object cache" in stderr_lower)
    )
    # 'is-installed' / 'is-active' / 'option pluck' answer "no" with exit code 1
    is_state_query = (
        _subcommand(command, "plugin", "is-installed") or
        _subcommand(command, "plugin", "is-active") or
        _subcommand(command, "option", "pluck")
    )
    return is_search_replace_no_change or is_cache_flush_not_found or is_state_query


def run_command(command, check=True, **kwargs):
    """Runs a command and returns the CompletedProcess, or None when it failed to run.

    With check=True a non-zero exit is reported as an error and None is returned.
    With check=False the result is returned as-is and a warning is printed unless
    the failure is a known harmless one (e.g. search-replace without changes).
    """
    output.log_output(f"-> Running: {' '.join(command)}")
    effective_kwargs = kwargs.copy()
    if 'capture_output' not in effective_kwargs:
        effective_kwargs['capture_output'] = True
    if 'text' not in effective_kwargs:
        effective_kwargs['text'] = True
    try:
        result = subprocess.run(command, check=False, **effective_kwargs)
        if check and result.returncode != 0:
            raise subprocess.CalledProcessError(
                result.returncode, command, output=result.stdout, stderr=result.stderr
            )
        if not check and result.returncode != 0:
            stderr_output = result.stderr.strip() if result.stderr else ""
            stdout_output = result.stdout.strip() if result.stdout else ""
            if not is_benign_failure(command, stdout_output, stderr_output):
                output.print_warning(f"Command '{' '.join(command)}' returned exit code {result.returncode}")
                if stdout_output: print(f"Stdout (warning):\n{stdout_output}", file=sys.stderr)
                if stderr_output: print(f"Stderr (warning):\n{stderr_output}", file=sys.stderr)
            elif _subcommand(command, "search-replace"):
                output.log_output("  search-replace finished (no changes or no tables).")
        return result
    except subprocess.CalledProcessError as e:
        output.print_error(f"Command '{' '.join(command)}' returned exit code {e.returncode}")
        if e.stdout and e.stdout.strip(): print(f"Stdout (error):\n{e.stdout.strip()}", file=sys.stderr)
        if e.stderr and e.stderr.strip(): print(f"Stderr (error):\n{e.stderr.strip()}", file=sys.stderr)
        return None
    except FileNotFoundError:
        output.print_error(f"Command '{command[0]}' not found. Check that it is installed and on PATH.")
        return None
    except PermissionError as e:
        output.print_error(f"Permission error while running '{command[0]}': {e}")
        return None


def succeeded(result):
    return result is not None and result.returncode == 0
