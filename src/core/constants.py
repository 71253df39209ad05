"""Core constants used across dumpsync modules.

This module centralizes defaults, protocol values and magic bytes.
Keeping values here avoids magic literals in pipeline logic.
"""

from __future__ import annotations

DEFAULT_INVENTORY = "all"
DEFAULT_LANGUAGE = "en"
DEFAULT_BATCH_SIZE = 500
DEFAULT_MAX_RETRIES = 5
DEFAULT_BASE_DELAY_MS = 1500
DEFAULT_PIPELINE_DEPTH = 1
DEFAULT_LOG_EVERY = 5000
DEFAULT_DOWNLOAD_ATTEMPTS = 3
DEFAULT_DOWNLOAD_RETRY_DELAY_SECONDS = 2.0
DEFAULT_HTTP_TIMEOUT_SECONDS = 60.0
DEFAULT_MIN_IMAGES = 1
DEFAULT_MIN_STAR_RATING = 0.0
DEFAULT_DOWNLOAD_CHUNK_SIZE = 64 * 1024
DEFAULT_DECOMPRESS_WRITE_SIZE = 128 * 1024
DEFAULT_DECOMPRESS_INPUT_SLICE = 4 * 1024

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})
ZSTD_FRAME_MAGIC = b"\x28\xb5\x2f\xfd"
ZSTD_SKIPPABLE_MAGIC_SUFFIX = b"\x2a\x4d\x18"
ZSTD_MAGIC_LENGTH = 4
FORMAT_PREVIEW_BYTES = 120
BODY_PREVIEW_CHARS = 200
RECORD_PREVIEW_CHARS = 160
MIN_NAME_LENGTH = 2
COUNTRY_CODE_LENGTH = 2
LOCATOR_PROXY_PATH = "/etg/proxy"
LOCATOR_TOKEN_HEADER = "x-internal-token"
ALLOWED_IMAGE_SCHEMES = ("http", "https")
SYNC_PROFILE_VERSION = 1

EXIT_CODE_SUCCESS = 0
EXIT_CODE_FAILED = 1
EXIT_CODE_CONFIG_ERROR = 2
EXIT_CODE_CANCELLED = 130
