ONE_KIBIBYTE = 1024
ONE_MEBIBYTE = ONE_KIBIBYTE * ONE_KIBIBYTE

UNIT_LABELS = ("B", "KB", "MB", "GB", "TB", "PB")

DEFAULT_CHUNK_MEGABYTES = 1
TICK_INTERVAL_SECONDS = 1.0

DEFAULT_HOST = "0.0.0.0"
MAX_PORT = 65535
