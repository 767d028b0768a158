import os
import time

# --- Rewrite defaults ---
FILE_FILTERS = (
    "*.php",
    "*.htaccess",
    "*.env",
    "*.ini",
    "*.json",
    "*.xml",
    "*.html",
    "*.css",
)
EXCLUDE_FILTERS = (
    "*/node_modules/*",
    "*/vendor/*",
    "*/wp-content/uploads/*",
    "*/wp-content/cache/*",
    "*.log",
)
MAX_DEPTH = 10
BACKUP_DIR_NAME = "file_backups"
BACKUP_SUFFIX = ".backup"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S-%f"

# --- WP-CLI ---
WP_CLI_BIN = "wp"
WP_CLI_FALLBACK_PATH = "/usr/local/bin/wp"
WP_CLI_FLAGS = ["--allow-root"]
WP_CLI_SKIP_FLAGS = ["--skip-plugins", "--skip-themes"]
MU_PLUGINS_DIR = os.path.join("wp-content", "mu-plugins")
# Relative to the directory holding the webroot, next to the file backups
MU_PLUGINS_TMP_DIR = os.path.join("temp", "mu-plugins.disabled")

# --- Platform / cache ---
RAPYD_BIN = "rapyd"
KEYDB_CLI_BIN = "keydb-cli"
KEYDB_SOCKET = "/var/run/redis/redis.sock"
RAPYDAPPS_DOMAIN = "rapydapps.cloud"

# --- User cleanup ---
MIGRATION_EMAIL_PATTERN = r"^migrations(\+[^@]+)?@rapyd\.cloud$"
CLEANUP_WP_FLAGS = ["--skip-themes", "--skip-plugins", "--skip-packages"]

# --- Site check ---
HTTP_TIMEOUT = 30


def default_log_file():
    return f"/tmp/path_url_replace_{int(time.time())}.log"
