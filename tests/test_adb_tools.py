"""Tests for device listing, property resolution and device actions."""

import os
import sys
import tempfile
import threading
import unittest
from unittest.mock import MagicMock, patch

os.environ.setdefault('ANDROID_DEVKIT_LOG_DIR', tempfile.mkdtemp(prefix='android_devkit_test_logs_'))

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from utils import adb_models, adb_tools  # noqa: E402
from utils.adb_client import AdbClient  # noqa: E402
from utils.adb_errors import AdbCommandError, AdbTimeoutError  # noqa: E402


def _result(stdout='', exit_code=0, stderr=''):
    return adb_models.CommandResult(exit_code=exit_code, stdout=stdout, stderr=stderr, args=())


DEVICES_OUTPUT = """* daemon not running; starting now at tcp:5037
* daemon started successfully
List of devices attached
emulator-5554          device product:sdk_gphone64_arm64 model:sdk_gphone64_arm64 device:emu64a transport_id:1
R58M123ABC             unauthorized usb:1-1 transport_id:2

garbage
192.168.1.20:5555      offline transport_id:3
"""


class ParseDevicesTests(unittest.TestCase):

    def test_parses_emulator_line(self):
        device = adb_tools.parse_device_line(
            'emulator-5554 device product:sdk_gphone64_arm64 model:sdk_gphone64_arm64 device:emu64a transport_id:1'
        )

        self.assertEqual(device.serial, 'emulator-5554')
        self.assertIs(device.state, adb_models.DeviceState.DEVICE)
        self.assertEqual(device.model, 'sdk_gphone64_arm64')
        self.assertEqual(device.product, 'sdk_gphone64_arm64')
        self.assertEqual(device.device_name, 'emu64a')
        self.assertEqual(device.transport_id, '1')
        self.assertTrue(device.is_emulator)

    def test_parse_full_output_skips_noise(self):
        devices = adb_tools.parse_devices_output(DEVICES_OUTPUT)

        self.assertEqual([device.serial for device in devices], ['emulator-5554', 'R58M123ABC', '192.168.1.20:5555'])
        self.assertIs(devices[1].state, adb_models.DeviceState.UNAUTHORIZED)
        self.assertEqual(devices[1].usb, '1-1')
        self.assertFalse(devices[1].is_emulator)
        self.assertIs(devices[2].state, adb_models.DeviceState.OFFLINE)
        self.assertTrue(devices[2].is_emulator)

    def test_only_default_wireless_port_counts_as_emulator(self):
        self.assertTrue(adb_models.is_emulator_serial('10.0.0.1:5555'))
        self.assertFalse(adb_models.is_emulator_serial('10.0.0.1:55550'))
        self.assertFalse(adb_models.is_emulator_serial('host:15555'))
        self.assertTrue(adb_models.is_emulator_serial('emulator-5556'))

    def test_no_permissions_state(self):
        device = adb_tools.parse_device_line(
            '0123456789ABCDEF no permissions (user in plugdev group; are your udev rules wrong?) usb:3-2'
        )

        self.assertIs(device.state, adb_models.DeviceState.NO_PERMISSIONS)
        self.assertEqual(device.usb, '3-2')

    def test_unknown_state_and_odd_tokens(self):
        device = adb_tools.parse_device_line('abc weird model: :x product:p 9bad:key')

        self.assertIs(device.state, adb_models.DeviceState.UNKNOWN)
        self.assertIsNone(device.model)
        self.assertEqual(device.product, 'p')

    def test_empty_output(self):
        self.assertEqual(adb_tools.parse_devices_output('List of devices attached\n\n'), [])

    def test_list_devices_runs_devices_l(self):
        client = MagicMock(spec=AdbClient)
        client.execute.return_value = _result(DEVICES_OUTPUT)

        devices = adb_tools.list_devices(client)

        client.execute.assert_called_once_with(['devices', '-l'])
        self.assertEqual(len(devices), 3)


class PropertyTests(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock(spec=AdbClient)

    def test_parse_getprop_output(self):
        output = (
            '[ro.product.model]: [Pixel 7]\n'
            '[ro.build.version.sdk]: [34]\n'
            '[persist.empty]: []\n'
            'not a property line\n'
        )

        props = adb_tools.parse_getprop_output(output)

        self.assertEqual(props['ro.product.model'], 'Pixel 7')
        self.assertEqual(props['ro.build.version.sdk'], '34')
        self.assertEqual(props['persist.empty'], '')
        self.assertEqual(len(props), 3)

    def test_device_name_prefers_model(self):
        self.client.execute.return_value = _result('[ro.product.name]: [panther]\n[ro.product.model]: [Pixel 7]\n')

        self.assertEqual(adb_tools.get_device_name(self.client, 'SER'), 'Pixel 7')

    def test_device_name_falls_back_to_serial(self):
        self.client.execute.return_value = _result('[ro.other]: [x]\n')

        self.assertEqual(adb_tools.get_device_name(self.client, 'SER'), 'SER')

    def test_api_level_non_numeric_is_zero(self):
        self.client.execute.return_value = _result('abc\n')
        self.assertEqual(adb_tools.get_android_api_level(self.client, 'SER'), 0)

        self.client.execute.return_value = _result('34\n')
        self.assertEqual(adb_tools.get_android_api_level(self.client, 'SER'), 34)

    def test_android_version_empty_is_unknown(self):
        self.client.execute.return_value = _result('\n')
        self.assertEqual(adb_tools.get_android_version(self.client, 'SER'), 'Unknown')

    def test_failed_getprop_raises(self):
        self.client.execute.return_value = _result('', exit_code=1, stderr='error: device offline')

        with self.assertRaises(AdbCommandError):
            adb_tools.get_device_properties(self.client, 'SER')


class ResolveDeviceInfoTests(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock(spec=AdbClient)
        self.ready = adb_models.Device(
            serial='emulator-5554',
            state=adb_models.DeviceState.DEVICE,
            model='sdk_gphone64_arm64',
        )

    def _route(self, responses):
        def execute(args, serial=None, timeout_ms=None):
            key = ' '.join(args)
            value = responses[key]
            if isinstance(value, Exception):
                raise value
            return value
        self.client.execute.side_effect = execute

    def test_not_ready_device_is_not_queried(self):
        device = adb_models.Device(serial='R58M', state=adb_models.DeviceState.UNAUTHORIZED)

        info = adb_tools.resolve_device_info(self.client, device)

        self.client.execute.assert_not_called()
        self.assertEqual(info.name, 'R58M')
        self.assertEqual(info.api_level, 0)
        self.assertEqual(info.android_version, 'Unknown')

    def test_ready_device_combines_three_queries(self):
        self._route({
            'shell getprop': _result('[ro.product.model]: [Pixel 7]\n'),
            'shell getprop ro.build.version.sdk': _result('34\n'),
            'shell getprop ro.build.version.release': _result('14\n'),
        })

        info = adb_tools.resolve_device_info(self.client, self.ready)

        self.assertEqual(info.name, 'Pixel 7')
        self.assertEqual(info.api_level, 34)
        self.assertEqual(info.android_version, '14')
        self.assertTrue(info.is_emulator)
        self.assertEqual(self.client.execute.call_count, 3)

    def test_partial_failure_falls_back_per_field(self):
        self._route({
            'shell getprop': AdbTimeoutError(['adb', 'shell', 'getprop'], 1000),
            'shell getprop ro.build.version.sdk': _result('33\n'),
            'shell getprop ro.build.version.release': _result('', exit_code=1),
        })

        info = adb_tools.resolve_device_info(self.client, self.ready)

        self.assertEqual(info.name, 'sdk_gphone64_arm64')
        self.assertEqual(info.api_level, 33)
        self.assertEqual(info.android_version, 'Unknown')

    def test_queries_run_concurrently(self):
        barrier = threading.Barrier(3, timeout=5)
        responses = {
            'shell getprop': _result('[ro.product.model]: [Pixel 7]\n'),
            'shell getprop ro.build.version.sdk': _result('34\n'),
            'shell getprop ro.build.version.release': _result('14\n'),
        }

        def execute(args, serial=None, timeout_ms=None):
            barrier.wait()
            return responses[' '.join(args)]

        self.client.execute.side_effect = execute

        info = adb_tools.resolve_device_info(self.client, self.ready)

        self.assertEqual(info.api_level, 34)

    def test_list_device_infos_keeps_listing_order(self):
        listing = _result(
            'List of devices attached\n'
            'AAA device model:Alpha\n'
            'BBB offline\n'
            'CCC device model:Gamma\n'
        )

        def execute(args, serial=None, timeout_ms=None):
            if args == ['devices', '-l']:
                return listing
            if args == ['shell', 'getprop']:
                return _result(f'[ro.product.model]: [{serial}-model]\n')
            return _result('30\n')

        self.client.execute.side_effect = execute

        infos = adb_tools.list_device_infos(self.client)

        self.assertEqual([info.serial for info in infos], ['AAA', 'BBB', 'CCC'])
        self.assertEqual([info.name for info in infos], ['AAA-model', 'BBB', 'CCC-model'])

    def test_list_device_infos_without_devices(self):
        self.client.execute.return_value = _result('List of devices attached\n')

        self.assertEqual(adb_tools.list_device_infos(self.client), [])


class DeviceActionTests(unittest.TestCase):

    def setUp(self):
        self.client = MagicMock(spec=AdbClient)

    def test_install_requires_success_marker(self):
        self.client.execute.return_value = _result('Performing Streamed Install\nSuccess\n')
        adb_tools.install_apk(self.client, 'SER', '/tmp/app.apk', replace=True)

        args, kwargs = self.client.execute.call_args
        self.assertEqual(args[0], ['install', '-r', '/tmp/app.apk'])
        self.assertEqual(kwargs['timeout_ms'], 120000)

        self.client.execute.return_value = _result('Failure [INSTALL_FAILED_VERSION_DOWNGRADE]\n')
        with self.assertRaises(AdbCommandError) as ctx:
            adb_tools.install_apk(self.client, 'SER', '/tmp/app.apk')
        self.assertIn('INSTALL_FAILED_VERSION_DOWNGRADE', str(ctx.exception))

    def test_uninstall_keep_data(self):
        self.client.execute.return_value = _result('Success\n')

        adb_tools.uninstall_package(self.client, 'SER', 'com.example', keep_data=True)

        self.client.execute.assert_called_once_with(['uninstall', '-k', 'com.example'], serial='SER')

    def test_reboot_rejects_unknown_mode(self):
        with self.assertRaises(ValueError):
            adb_tools.reboot(self.client, 'SER', mode='fastboot')
        self.client.execute.assert_not_called()

    def test_screenshot_captures_pulls_and_cleans_up(self):
        self.client.execute.return_value = _result('')

        path = adb_tools.take_screenshot(self.client, 'SER', '/tmp/shot.png')

        self.assertEqual(path, '/tmp/shot.png')
        issued = [call.args[0] for call in self.client.execute.call_args_list]
        self.assertEqual(issued, [
            ['shell', 'screencap -p /sdcard/screenshot.png'],
            ['pull', '/sdcard/screenshot.png', '/tmp/shot.png'],
            ['shell', 'rm /sdcard/screenshot.png'],
        ])

    def test_launch_app_without_activity_uses_monkey(self):
        self.client.execute.return_value = _result('Events injected: 1')

        adb_tools.launch_app(self.client, 'SER', 'com.example')

        command = self.client.execute.call_args.args[0]
        self.assertEqual(command[0], 'shell')
        self.assertIn('monkey -p com.example', command[1])

    def test_dump_logcat_returns_stdout(self):
        self.client.execute.return_value = _result('line1\nline2\n')

        self.assertEqual(adb_tools.dump_logcat(self.client, 'SER', lines=50), 'line1\nline2\n')
        self.client.execute.assert_called_once_with(['logcat', '-d', '-t', '50'], serial='SER')

    def test_is_adb_available_handles_spawn_error(self):
        client = AdbClient(adb_path=os.path.join(tempfile.gettempdir(), 'missing-adb-binary'))

        self.assertFalse(adb_tools.is_adb_available(client))


def test_force_stop_app_failure_raises():
    client = MagicMock(spec=AdbClient)
    client.execute.return_value = _result('', exit_code=255, stderr='error: closed')

    with patch.object(adb_tools.logger, 'info'):
        try:
            adb_tools.force_stop_app(client, 'SER', 'com.example')
        except AdbCommandError as exc:
            assert 'com.example' in str(exc)
        else:
            raise AssertionError('force_stop_app should raise on failure')


if __name__ == '__main__':
    unittest.main()
