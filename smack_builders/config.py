"""
Central configuration for the builder backends.

Flat-constant interface.  Values that operators are expected to change
per deployment live on ``api.config.ApiSettings`` (environment driven);
the constants here describe the external tools and services the
backends talk to.

Search for ``# STATUS:`` to locate all annotations.
"""
import os
from pathlib import Path

# ── Paths ──────────────────────────────────────────────────────────────
DEFAULT_ARTIFACT_DIR = Path("/tmp/smack-builder-artifacts")  # STATUS: ACTIVE — generated documents (game-scene, flutter-codegen)
DEFAULT_JOB_DB_PATH = "/tmp/smack-builder-jobs.db"  # STATUS: ACTIVE — SqliteJobStore default location

# ── Cloud artifacts ────────────────────────────────────────────────────
DEFAULT_ARTIFACT_BASE_URL = "https://example.invalid/flutter-artifacts"  # STATUS: PLACEHOLDER — cloud build bucket not provisioned
CLOUD_ARTIFACT_NAME = "app-release.apk"           # STATUS: ACTIVE — builders/cloud.py

# ── Gemini text generation ─────────────────────────────────────────────
GEMINI_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"  # STATUS: ACTIVE — builders/gemini.py
GEMINI_API_KEY_ENV = "GOOGLE_GENERATIVE_AI_API_KEY"  # STATUS: ACTIVE — env var holding the API key
DEFAULT_GEMINI_MODEL = os.environ.get("DEFAULT_MODEL", "gemini-2.0-flash")  # STATUS: ACTIVE
GEMINI_TEMPERATURE = 0.2                          # STATUS: ACTIVE — default sampling temperature
GEMINI_MAX_OUTPUT_TOKENS = 4096                   # STATUS: ACTIVE
GEMINI_TIMEOUT_SECONDS = 60.0                     # STATUS: ACTIVE — per-request HTTP timeout

# ── Local build commands ───────────────────────────────────────────────
# kind -> (executable checked on PATH, full command, working subdirectory, artifact path)
BUILD_COMMANDS = {                                # STATUS: ACTIVE — builders/commands.py
    "flutter-apk-build": (
        "flutter",
        "flutter build apk --release",
        "mobile",
        "mobile/build/app/outputs/flutter-apk/app-release.apk",
    ),
    "desktop-build": (
        "pnpm",
        "pnpm tauri:build",
        "",
        "src-tauri/target/release/bundle",
    ),
    "react-native-eas-build": (
        "eas",
        "eas build --platform android --non-interactive",
        "",
        "",
    ),
}
COMMAND_OUTPUT_TAIL_CHARS = 4000                  # STATUS: ACTIVE — stdout/stderr kept on BuildResult
DEFAULT_COMMAND_TIMEOUT_SECONDS = 1800.0          # STATUS: ACTIVE — subprocess hard limit

# ── Logging ────────────────────────────────────────────────────────────
LOG_LEVEL = "INFO"                                # STATUS: ACTIVE — api/main.py; "DEBUG", "INFO", "WARNING", "ERROR"
LOG_FORMAT = "structured"                         # STATUS: ACTIVE — api/main.py; "structured" or "json"


def validate_config() -> list:
    """Check config for common misconfigurations.

    Returns a list of dicts: [{"level": "WARNING"|"ERROR", "message": str}].
    Called on server startup.
    """
    import shutil

    issues = []

    # 1. No Gemini key → generation backends use template fallbacks
    if not os.environ.get(GEMINI_API_KEY_ENV, ""):
        issues.append({
            "level": "WARNING",
            "message": (
                f"{GEMINI_API_KEY_ENV} is not set. game-scene and flutter-codegen "
                "jobs will produce template output instead of generated code."
            ),
        })

    # 2. Build tools missing from PATH
    for kind, (executable, _cmd, _cwd, _artifact) in BUILD_COMMANDS.items():
        if shutil.which(executable) is None:
            issues.append({
                "level": "WARNING",
                "message": f"'{executable}' not found on PATH. {kind} jobs will fail.",
            })

    # 3. Cloud artifact bucket still the placeholder
    base_url = os.environ.get("SMACK_API_ARTIFACT_BASE_URL", DEFAULT_ARTIFACT_BASE_URL)
    if base_url.startswith("https://example.invalid"):
        issues.append({
            "level": "WARNING",
            "message": (
                "Cloud artifact base URL is the placeholder host. build-artifact "
                "locators will not resolve unless SMACK_API_ARTIFACT_BASE_URL is set."
            ),
        })

    if LOG_FORMAT not in ("structured", "json"):
        issues.append({
            "level": "ERROR",
            "message": f"LOG_FORMAT={LOG_FORMAT!r} is invalid. Use 'structured' or 'json'.",
        })

    return issues
