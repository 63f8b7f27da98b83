"""Application constants and configuration values."""


class ADBConstants:
    """ADB-related constants."""

    # Command timeouts (milliseconds)
    DEFAULT_COMMAND_TIMEOUT_MS = 30000
    MIN_COMMAND_TIMEOUT_MS = 1000
    INSTALL_COMMAND_TIMEOUT_MS = 120000

    # Binary resolution
    ADB_BINARY = 'adb'
    SDK_ENV_VARS = ('ANDROID_HOME', 'ANDROID_SDK_ROOT')
    PLATFORM_TOOLS_DIR = 'platform-tools'

    # Device states as printed by `adb devices`
    DEVICE_STATE_DEVICE = 'device'
    DEVICE_STATE_OFFLINE = 'offline'
    DEVICE_STATE_UNAUTHORIZED = 'unauthorized'
    DEVICE_STATE_AUTHORIZING = 'authorizing'
    DEVICE_STATE_NO_PERMISSIONS = 'no permissions'
    DEVICE_STATE_RECOVERY = 'recovery'
    DEVICE_STATE_BOOTLOADER = 'bootloader'
    DEVICE_STATE_SIDELOAD = 'sideload'
    DEVICE_STATE_UNKNOWN = 'unknown'

    # Device listing
    DEVICES_HEADER_PREFIX = 'List of devices'
    DAEMON_NOTICE_PREFIX = '*'
    EMULATOR_SERIAL_PREFIX = 'emulator-'
    DEFAULT_WIRELESS_PORT = 5555

    # Property keys
    PROP_MODEL = 'ro.product.model'
    PROP_NAME = 'ro.product.name'
    PROP_SDK = 'ro.build.version.sdk'
    PROP_RELEASE = 'ro.build.version.release'

    # Fallbacks for unresolved properties
    UNKNOWN_VERSION = 'Unknown'
    UNKNOWN_API_LEVEL = 0
    UNKNOWN_ADB_VERSION = 'unknown'

    # Reboot modes accepted by `adb reboot`
    REBOOT_MODES = ('bootloader', 'recovery', 'sideload')

    # Screenshot staging path on device
    SCREENSHOT_REMOTE_PATH = '/sdcard/screenshot.png'


class LogcatConstants:
    """Logcat streaming constants."""

    OUTPUT_FORMAT = 'threadtime'
    SILENCE_ALL_DIRECTIVE = '*:S'

    # Entry retention
    DEFAULT_MAX_ENTRIES = 10000
    MIN_MAX_ENTRIES = 100

    # Default number of lines for one-shot dumps
    DEFAULT_DUMP_LINES = 1000

    # Process lifecycle (milliseconds)
    START_TIMEOUT_MS = 5000
    STOP_GRACE_MS = 3000

    DEFAULT_MIN_LEVEL = 'V'
    DEFAULT_FILTER = ''


class LoggingConstants:
    """Logging configuration constants."""

    # Log levels
    DEFAULT_LOG_LEVEL = 'INFO'

    # Log format
    LOG_FORMAT = '%(asctime)s %(trace_id)s %(name)-20s %(levelname)-8s %(message)s'
    CONSOLE_LOG_FORMAT = '%(levelname)s [%(trace_id)s] %(message)s'
    LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

    # Log directory override (used by tests and packaging)
    LOG_DIR_ENV = 'ANDROID_DEVKIT_LOG_DIR'
    LOG_FILE_PREFIX = 'android_devkit_'


class ApplicationConstants:
    """General application constants."""

    # Application info
    APP_NAME = "Android DevKit"
    APP_VERSION = "0.3.0"
    APP_DESCRIPTION = "ADB command execution and logcat streaming toolkit"
