"""Operator-facing status lines, optionally mirrored to a log file."""

import sys
import time

LOG_FILE = None


def set_log_file(path):
    global LOG_FILE
    LOG_FILE = path


def _log(line):
    if not LOG_FILE:
        return
    try:
        with open(LOG_FILE, "a", encoding="utf-8") as f:
            f.write(f"[{time.strftime('%Y-%m-%d %H:%M:%S')}] {line}\n")
    except OSError as e:
        print(f"[⚠] Cannot write to log file '{LOG_FILE}': {e}", file=sys.stderr)


def _emit(line, stream=None):
    print(line, file=stream or sys.stdout)
    _log(line)


def print_header(title):
    _emit("")
    _emit("=" * 56)
    _emit(title)
    _emit("=" * 56)


def print_info(message):
    _emit(f"[INFO] {message}")


def print_success(message):
    _emit(f"[✓] {message}")


def print_warning(message):
    _emit(f"[⚠] {message}")


def print_error(message):
    _emit(f"[✗] {message}", stream=sys.stderr)


def log_output(message):
    """Plain progress line, e.g. per-file rewrite notices."""
    _emit(message)


def confirm(question, default=False):
    suffix = "(Y/n)" if default else "(y/N)"
    try:
        reply = input(f"{question} {suffix}: ").strip()
    except EOFError:
        reply = ""
    if not reply:
        return default
    return reply.lower() in ("y", "yes")


def prompt(question):
    try:
        return input(f"{question}: ").strip()
    except EOFError:
        return ""
