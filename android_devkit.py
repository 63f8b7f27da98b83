"""Command-line entry point for Android DevKit."""

import argparse
import signal
import sys
from typing import List, Optional

from PyQt6.QtCore import QCoreApplication, QTimer

from config.config_manager import ConfigManager
from config.constants import ApplicationConstants
from modules.logcat import LogcatEventType, LogcatStreamEngine, LogLevel
from utils import adb_tools
from utils import common
from utils.adb_client import AdbClient
from utils.adb_errors import AdbError

__all__ = [
    "build_parser",
    "main",
]

logger = common.get_logger('cli')

# Lets Python signal handlers run while the Qt loop is blocked in C++.
_SIGNAL_POLL_INTERVAL_MS = 200


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='android-devkit',
        description=f'{ApplicationConstants.APP_NAME}: {ApplicationConstants.APP_DESCRIPTION}',
    )
    parser.add_argument('--config', help='Path to the JSON configuration file')
    parser.add_argument('--adb', help='adb binary to use (overrides the configuration)')
    parser.add_argument('--version', action='version', version=f'%(prog)s {ApplicationConstants.APP_VERSION}')

    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('devices', help='List attached devices with their details')
    subparsers.add_parser('version', help='Print the adb version')

    connect_parser = subparsers.add_parser('connect', help='Connect to a device over TCP/IP')
    connect_parser.add_argument('host')
    connect_parser.add_argument('port', nargs='?', type=int)

    disconnect_parser = subparsers.add_parser('disconnect', help='Disconnect TCP/IP devices')
    disconnect_parser.add_argument('host', nargs='?')
    disconnect_parser.add_argument('port', nargs='?', type=int)

    logcat_parser = subparsers.add_parser('logcat', help='Stream parsed logcat entries')
    logcat_parser.add_argument('-s', '--serial', help='Target device serial')
    logcat_parser.add_argument('--tag', action='append', default=[], help='Only show this tag (repeatable)')
    logcat_parser.add_argument('--level', help='Minimum level code (V, D, I, W, E, F, S)')
    logcat_parser.add_argument('--filter', dest='text_filter', help='Case-insensitive text filter')
    logcat_parser.add_argument('--clear', action='store_true', help='Clear the device log buffer first')

    return parser


def _print_devices(client: AdbClient) -> int:
    infos = adb_tools.list_device_infos(client)
    if not infos:
        print('No devices found')
        return 0
    for info in infos:
        kind = 'emulator' if info.is_emulator else 'device'
        print(
            f'{info.serial}\t{info.state.value}\t{kind}\t{info.name}\t'
            f'Android {info.android_version} (API {info.api_level})'
        )
    return 0


def _run_logcat(client: AdbClient, config_manager: ConfigManager, args: argparse.Namespace) -> int:
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    engine = LogcatStreamEngine.from_settings(client, config_manager.get_logcat_settings())
    if args.level:
        engine.set_min_level(LogLevel.from_code(args.level))
    if args.text_filter is not None:
        engine.set_text_filter(args.text_filter)

    def on_event(event) -> None:
        if event.kind is LogcatEventType.ENTRY:
            print(event.entry.format(), flush=True)
        elif event.kind is LogcatEventType.ERROR:
            print(f'[adb] {event.message}', file=sys.stderr, flush=True)
        elif event.kind is LogcatEventType.CLOSE:
            app.quit()

    if args.clear:
        engine.clear_device_buffer(args.serial)

    with engine.subscribe(on_event):
        previous_handler = signal.signal(signal.SIGINT, lambda *_: engine.stop())
        timer = QTimer()
        timer.timeout.connect(lambda: None)
        timer.start(_SIGNAL_POLL_INTERVAL_MS)
        try:
            engine.start(serial=args.serial, tags=args.tag)
            if engine.is_running:
                app.exec()
        finally:
            timer.stop()
            engine.stop()
            signal.signal(signal.SIGINT, previous_handler)

    logger.info('Logcat session ended, %s entries retained', len(engine.entries()))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Parse ``argv`` and run the requested command; returns the exit code."""
    args = build_parser().parse_args(argv)

    config_manager = ConfigManager(args.config)
    logging_settings = config_manager.get_logging_settings()
    common.set_log_level(logging_settings.log_level)
    common.set_file_logging(logging_settings.log_to_file)

    adb_settings = config_manager.get_adb_settings()
    if args.adb:
        client = AdbClient(adb_path=args.adb, timeout_ms=adb_settings.command_timeout_ms)
    else:
        client = AdbClient.from_settings(adb_settings)

    with common.trace_id_scope(common.generate_trace_id()):
        try:
            if args.command == 'devices':
                return _print_devices(client)
            if args.command == 'version':
                print(client.version())
                return 0
            if args.command == 'connect':
                print(client.connect(args.host, args.port or adb_settings.default_port))
                return 0
            if args.command == 'disconnect':
                print(client.disconnect(args.host, args.port))
                return 0
            if args.command == 'logcat':
                return _run_logcat(client, config_manager, args)
        except AdbError as exc:
            logger.error('Command %s failed: %s', args.command, exc)
            print(f'Error: {exc}', file=sys.stderr)
            return 1
        except ValueError as exc:
            print(f'Error: {exc}', file=sys.stderr)
            return 1

    return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
