"""Tests for the android_devkit command-line front end."""

import os
import sys
import tempfile
from unittest.mock import patch

os.environ.setdefault('ANDROID_DEVKIT_LOG_DIR', tempfile.mkdtemp(prefix='android_devkit_test_logs_'))

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import android_devkit  # noqa: E402
from utils import adb_models  # noqa: E402
from utils.adb_errors import AdbSpawnError  # noqa: E402


def _config_args(tmp_path):
    return ['--config', str(tmp_path / 'config.json'), '--adb', 'adb']


def test_version_prints_adb_version(tmp_path, capsys):
    with patch.object(android_devkit.AdbClient, 'version', return_value='1.0.41'):
        exit_code = android_devkit.main(_config_args(tmp_path) + ['version'])

    assert exit_code == 0
    assert capsys.readouterr().out.strip() == '1.0.41'


def test_devices_lists_resolved_info(tmp_path, capsys):
    device = adb_models.Device(serial='emulator-5554', state=adb_models.DeviceState.DEVICE)
    info = adb_models.DeviceInfo(device=device, name='Pixel 7', api_level=34, android_version='14')

    with patch.object(android_devkit.adb_tools, 'list_device_infos', return_value=[info]):
        exit_code = android_devkit.main(_config_args(tmp_path) + ['devices'])

    output = capsys.readouterr().out
    assert exit_code == 0
    assert 'emulator-5554' in output
    assert 'Pixel 7' in output
    assert 'API 34' in output


def test_connect_uses_configured_default_port(tmp_path):
    with patch.object(android_devkit.AdbClient, 'connect', return_value='connected') as connect:
        exit_code = android_devkit.main(_config_args(tmp_path) + ['connect', '192.168.0.7'])

    assert exit_code == 0
    connect.assert_called_once_with('192.168.0.7', 5555)


def test_adb_errors_map_to_exit_code_one(tmp_path, capsys):
    error = AdbSpawnError('adb', 'No such file or directory')
    with patch.object(android_devkit.adb_tools, 'list_device_infos', side_effect=error):
        exit_code = android_devkit.main(_config_args(tmp_path) + ['devices'])

    assert exit_code == 1
    assert 'Unable to launch adb' in capsys.readouterr().err


def test_logcat_parser_accepts_repeated_tags():
    args = android_devkit.build_parser().parse_args(
        ['logcat', '-s', 'SER', '--tag', 'A', '--tag', 'B', '--level', 'W', '--filter', 'boom', '--clear']
    )

    assert args.serial == 'SER'
    assert args.tag == ['A', 'B']
    assert args.level == 'W'
    assert args.text_filter == 'boom'
    assert args.clear is True
