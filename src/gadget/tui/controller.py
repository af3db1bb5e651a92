"""Session controller: the state machine behind the interactive menu.

The controller is driven one message at a time by the runtime. ``update()``
mutates :class:`SessionState` synchronously and returns the tasks to launch;
it never blocks and never raises for a failed operation.

Modes form a star around ``MENU``::

    MENU -> DEVICE_SELECT | EMULATOR_SELECT | TEXT_INPUT -> MENU
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from functools import partial

from gadget.bridge.devices import Device
from gadget.bridge.tracking import DeviceWatcher
from gadget.commands import wifi
from gadget.commands.settings import SettingType, get_setting_handler
from gadget.config import GadgetConfig
from gadget.exceptions import InvalidParameterError, WatcherError
from gadget.registry import CatalogEntry
from gadget.tui import operations, refresh
from gadget.tui.dispatch import Task
from gadget.tui.fuzzy import filter_commands
from gadget.tui.messages import (
    AvdsLoaded,
    DayNightScreenshotDone,
    DevicesLoaded,
    EmulatorConfigureDone,
    EmulatorLaunchDone,
    KeyPress,
    LiveOutput,
    Message,
    OperationResult,
    RecordingStarted,
    RefreshRequested,
    ScreenRecordDone,
    ScreenshotDone,
    SettingChanged,
    SettingLoaded,
    WatcherStopped,
    WifiConnectDone,
    WifiDisconnectDone,
    WifiPairDone,
)
from gadget.tui.state import (
    ACTIVITY_LABELS,
    Activity,
    LogHistory,
    Mode,
    SessionSnapshot,
    SessionState,
    Severity,
    TextAction,
    clamp_index,
)
from gadget.utils.logging import get_logger

logger = get_logger(__name__)

KEY_QUIT = "ctrl+c"
KEY_ESCAPE = "escape"
KEY_ENTER = "enter"
KEY_BACKSPACE = "backspace"
SELECT_UP_KEYS = frozenset({"up", "k", "h"})
SELECT_DOWN_KEYS = frozenset({"down", "j", "l"})

PROMPT_CONNECT = (
    "Enter IP address or IP:port (e.g., 192.168.1.100 or 192.168.1.100:5555)\n"
    "Defaults to port {port} if not specified"
)
PROMPT_DISCONNECT = (
    "Enter IP address or IP:port to disconnect (e.g., 192.168.1.100 or 192.168.1.100:5555)\n"
    "Defaults to port {port} if not specified"
)
PROMPT_PAIR_ADDRESS = "Enter pairing address from phone (e.g., 192.168.3.30:43719)"
PROMPT_PAIR_CODE = "Enter 6-digit pairing code from phone for {address}"

_SETTING_COMMANDS = {
    "change-dpi": SettingType.DPI,
    "change-font-size": SettingType.FONT_SIZE,
    "change-screen-size": SettingType.SCREEN_SIZE,
}
_EMULATOR_COMMANDS = frozenset({"launch-emulator", "configure-emulator"})


@dataclass(frozen=True)
class _OutcomeRule:
    activity: Activity
    failure_prefix: str
    refreshes_devices: bool = False


_OUTCOME_RULES: dict[type[OperationResult], _OutcomeRule] = {
    ScreenshotDone: _OutcomeRule(Activity.SCREENSHOT, "Screenshot failed: "),
    DayNightScreenshotDone: _OutcomeRule(Activity.DAY_NIGHT, "Day-night screenshots failed: "),
    ScreenRecordDone: _OutcomeRule(Activity.RECORDING, "Screen recording failed: "),
    SettingChanged: _OutcomeRule(Activity.CHANGING_SETTING, "Setting change failed: "),
    WifiConnectDone: _OutcomeRule(Activity.CONNECTING_WIFI, "WiFi connect failed: ", True),
    WifiDisconnectDone: _OutcomeRule(
        Activity.DISCONNECTING_WIFI, "WiFi disconnect failed: ", True
    ),
    WifiPairDone: _OutcomeRule(Activity.PAIRING_WIFI, "WiFi pair failed: ", True),
    EmulatorLaunchDone: _OutcomeRule(
        Activity.LAUNCHING_EMULATOR, "Emulator launch failed: ", True
    ),
    EmulatorConfigureDone: _OutcomeRule(
        Activity.CONFIGURING_EMULATOR, "Emulator configuration failed: "
    ),
}


class SessionController:
    """Owns :class:`SessionState` and decides what to run next.

    Args:
        config: Resolved configuration.
        watcher: Device-change watcher to start with the session; None
            disables event-driven refresh (periodic refresh still runs).
        clock: Monotonic clock used to timestamp activities.
    """

    def __init__(
        self,
        config: GadgetConfig,
        watcher: DeviceWatcher | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.watcher = watcher
        self.state = SessionState(log=LogHistory(config.log_capacity))
        self.stopped = threading.Event()
        self._clock = clock

        self._handlers: dict[type[Message], Callable[[Message], list[Task]]] = {
            KeyPress: self._on_key,
            DevicesLoaded: self._on_devices_loaded,
            AvdsLoaded: self._on_avds_loaded,
            SettingLoaded: self._on_setting_loaded,
            RecordingStarted: self._on_recording_started,
            LiveOutput: self._on_live_output,
            RefreshRequested: self._on_refresh_requested,
            WatcherStopped: self._on_watcher_stopped,
        }
        for message_type, rule in _OUTCOME_RULES.items():
            self._handlers[message_type] = partial(self._on_outcome, rule)

    # ----------------------------------------------------------------- #
    # Lifecycle
    # ----------------------------------------------------------------- #

    def start(self) -> list[Task]:
        """Initial device load plus the refresh producers."""
        tasks = self._request_devices()
        if self.watcher is not None:
            try:
                self.watcher.start()
            except WatcherError as exc:
                logger.warning("watcher_unavailable", error=str(exc))
                self._log(f"Device watcher unavailable: {exc}", Severity.ERROR)
            else:
                self.state.watcher_running = True
                tasks.append(self._watch_task())
        tasks.append(refresh.periodic_refresh(self.config.refresh_interval_s, self.stopped))
        return tasks

    def close(self) -> None:
        """Stop the refresh producers, the watcher, and any unsaved recording."""
        self.stopped.set()
        if self.watcher is not None:
            self.watcher.stop()
        recording = self.state.recording
        if recording is not None:
            self.state.recording = None
            recording.abort()

    def snapshot(self) -> SessionSnapshot:
        return self.state.snapshot()

    def update(self, msg: Message) -> list[Task]:
        """Apply one inbox message; returns the tasks to launch."""
        handler = self._handlers.get(type(msg))
        if handler is None:
            logger.debug("message_ignored", message=type(msg).__name__)
            return []
        return handler(msg)

    # ----------------------------------------------------------------- #
    # Helpers
    # ----------------------------------------------------------------- #

    def _log(self, message: str, severity: Severity, details: tuple[str, ...] = ()) -> None:
        entry = self.state.log.add(message, severity, details)
        logger.info("session_log", severity=severity.value, message=entry.message)

    def _begin(self, activity: Activity) -> bool:
        if activity in self.state.activities:
            self._log(f"{ACTIVITY_LABELS[activity]} already in progress", Severity.INFO)
            return False
        self.state.activities[activity] = self._clock()
        return True

    def _finish(self, activity: Activity) -> None:
        self.state.activities.pop(activity, None)

    def _set_query(self, query: str) -> None:
        self.state.search_query = query
        self.state.filtered_commands = filter_commands(query)

    def _request_devices(self) -> list[Task]:
        if self.state.is_active(Activity.LOADING_DEVICES):
            # Reload once the in-flight enumeration lands
            self.state.devices_stale = True
            return []
        self.state.activities[Activity.LOADING_DEVICES] = self._clock()
        return [operations.load_devices(self.config)]

    def _watch_task(self) -> Task:
        assert self.watcher is not None
        return refresh.watch_devices(self.watcher, self.config.settle_delay_s, self.stopped)

    def _back_to_menu(self) -> None:
        state = self.state
        state.mode = Mode.MENU
        state.pending_command = None
        state.pending_text_action = None
        state.pending_text_context = None
        state.text_input = ""
        state.text_prompt = ""
        state.setting_device = None
        state.setting_info = None

    def _open_text_input(
        self,
        action: TextAction,
        prompt: str,
        context: str | None = None,
    ) -> None:
        state = self.state
        state.mode = Mode.TEXT_INPUT
        state.pending_text_action = action
        state.pending_text_context = context
        state.text_input = ""
        state.text_prompt = prompt

    # ----------------------------------------------------------------- #
    # Keys
    # ----------------------------------------------------------------- #

    def _on_key(self, msg: KeyPress) -> list[Task]:
        if msg.key == KEY_QUIT:
            self.state.quitting = True
            return []
        mode = self.state.mode
        if mode is Mode.MENU:
            return self._menu_key(msg.key)
        if mode is Mode.DEVICE_SELECT:
            return self._device_select_key(msg.key)
        if mode is Mode.EMULATOR_SELECT:
            return self._emulator_select_key(msg.key)
        return self._text_input_key(msg.key)

    def _menu_key(self, key: str) -> list[Task]:
        state = self.state
        if key == KEY_ESCAPE:
            if state.is_active(Activity.RECORDING):
                return self._stop_recording()
            if state.search_query:
                self._set_query("")
                state.selected_index = 0
            return []
        if key == "up":
            if state.selected_index > 0:
                state.selected_index -= 1
        elif key == "down":
            if state.selected_index < len(state.filtered_commands) - 1:
                state.selected_index += 1
        elif key == KEY_ENTER:
            return self._select_command()
        elif key == KEY_BACKSPACE:
            if state.search_query:
                self._set_query(state.search_query[:-1])
                state.selected_index = clamp_index(
                    state.selected_index, len(state.filtered_commands)
                )
        elif len(key) == 1 and key.isprintable():
            self._set_query(state.search_query + key)
            state.selected_index = 0
        return []

    def _device_select_key(self, key: str) -> list[Task]:
        state = self.state
        if key == KEY_ESCAPE:
            self._back_to_menu()
        elif key in SELECT_UP_KEYS:
            if state.selected_device_index > 0:
                state.selected_device_index -= 1
        elif key in SELECT_DOWN_KEYS:
            if state.selected_device_index < len(state.devices) - 1:
                state.selected_device_index += 1
        elif key == KEY_ENTER:
            if not state.devices or state.pending_command is None:
                return []
            index = clamp_index(state.selected_device_index, len(state.devices))
            entry = state.pending_command
            device = state.devices[index]
            self._back_to_menu()
            return self._run_device_command(entry, device)
        return []

    def _emulator_select_key(self, key: str) -> list[Task]:
        state = self.state
        if key == KEY_ESCAPE:
            self._back_to_menu()
        elif key in SELECT_UP_KEYS:
            if state.selected_emulator_index > 0:
                state.selected_emulator_index -= 1
        elif key in SELECT_DOWN_KEYS:
            if state.selected_emulator_index < len(state.avds) - 1:
                state.selected_emulator_index += 1
        elif key == KEY_ENTER:
            if not state.avds or state.pending_command is None:
                return []
            index = clamp_index(state.selected_emulator_index, len(state.avds))
            avd = state.avds[index]
            command_id = state.pending_command.id
            self._back_to_menu()
            if command_id == "configure-emulator":
                if not self._begin(Activity.CONFIGURING_EMULATOR):
                    return []
                return [operations.configure_emulator_task(avd)]
            if not self._begin(Activity.LAUNCHING_EMULATOR):
                return []
            return [operations.launch_emulator_task(self.config, avd)]
        return []

    def _text_input_key(self, key: str) -> list[Task]:
        state = self.state
        if key == KEY_ESCAPE:
            self._back_to_menu()
        elif key == KEY_ENTER:
            return self._submit_text()
        elif key == KEY_BACKSPACE:
            state.text_input = state.text_input[:-1]
        elif len(key) == 1 and key.isprintable():
            state.text_input += key
        return []

    # ----------------------------------------------------------------- #
    # Command selection
    # ----------------------------------------------------------------- #

    def _select_command(self) -> list[Task]:
        state = self.state
        if not state.filtered_commands:
            return []
        entry = state.filtered_commands[
            clamp_index(state.selected_index, len(state.filtered_commands))
        ]
        command_id = entry.id
        port = self.config.adb_static_port

        if command_id in _EMULATOR_COMMANDS:
            state.pending_command = entry
            state.mode = Mode.EMULATOR_SELECT
            state.selected_emulator_index = clamp_index(
                state.selected_emulator_index, len(state.avds)
            )
            if state.avds_loading:
                return []
            state.avds_loading = True
            return [operations.load_avds(self.config)]
        if command_id == "connect-wifi":
            self._open_text_input(TextAction.WIFI_CONNECT, PROMPT_CONNECT.format(port=port))
            return []
        if command_id == "disconnect-wifi":
            self._open_text_input(
                TextAction.WIFI_DISCONNECT, PROMPT_DISCONNECT.format(port=port)
            )
            return []
        if command_id == "pair-wifi":
            self._open_text_input(TextAction.WIFI_PAIR_ADDRESS, PROMPT_PAIR_ADDRESS)
            return []
        if command_id == "refresh-devices":
            self._log("Refreshing devices", Severity.INFO)
            return self._request_devices()

        if not state.devices:
            self._log("No devices connected", Severity.ERROR)
            return []
        if len(state.devices) == 1:
            return self._run_device_command(entry, state.devices[0])
        state.pending_command = entry
        state.mode = Mode.DEVICE_SELECT
        state.selected_device_index = clamp_index(
            state.selected_device_index, len(state.devices)
        )
        return []

    def _run_device_command(self, entry: CatalogEntry, device: Device) -> list[Task]:
        command_id = entry.id
        logger.info("command_selected", command=command_id, serial=device.serial)

        if command_id == "screenshot":
            if not self._begin(Activity.SCREENSHOT):
                return []
            return [operations.take_screenshot_task(self.config, device)]
        if command_id == "screenshot-day-night":
            if not self._begin(Activity.DAY_NIGHT):
                return []
            self.state.live_output.clear()
            return [operations.day_night_task(self.config, device)]
        if command_id == "screen-record":
            if not self._begin(Activity.RECORDING):
                return []
            self.state.recording_stopping = False
            return [operations.start_recording_task(self.config, device)]
        setting_type = _SETTING_COMMANDS.get(command_id)
        if setting_type is not None:
            if not self._begin(Activity.LOADING_SETTING):
                return []
            return [operations.load_setting_task(self.config, device, setting_type)]

        logger.warning("unknown_device_command", command=command_id)
        return []

    # ----------------------------------------------------------------- #
    # Text submission
    # ----------------------------------------------------------------- #

    def _reject_input(self, message: str) -> list[Task]:
        self._log(message, Severity.ERROR)
        self.state.text_input = ""
        return []

    def _submit_text(self) -> list[Task]:
        state = self.state
        action = state.pending_text_action
        value = state.text_input.strip()

        if action in (TextAction.WIFI_CONNECT, TextAction.WIFI_DISCONNECT):
            try:
                wifi.parse_address(value)
            except InvalidParameterError as exc:
                return self._reject_input(f"Invalid address: {exc}")
            self._back_to_menu()
            if action is TextAction.WIFI_CONNECT:
                if not self._begin(Activity.CONNECTING_WIFI):
                    return []
                return [operations.connect_wifi_task(self.config, value)]
            if not self._begin(Activity.DISCONNECTING_WIFI):
                return []
            return [operations.disconnect_wifi_task(self.config, value)]

        if action is TextAction.WIFI_PAIR_ADDRESS:
            try:
                _, port = wifi.parse_address(value)
            except InvalidParameterError as exc:
                return self._reject_input(f"Invalid address: {exc}")
            if port is None:
                return self._reject_input(
                    "Invalid address: include the pairing port shown on the phone"
                )
            self._open_text_input(
                TextAction.WIFI_PAIR_CODE,
                PROMPT_PAIR_CODE.format(address=value),
                context=value,
            )
            return []

        if action is TextAction.WIFI_PAIR_CODE:
            if not wifi.validate_pairing_code(value):
                return self._reject_input("Invalid pairing code: expected 6 digits")
            address = state.pending_text_context or ""
            self._back_to_menu()
            if not self._begin(Activity.PAIRING_WIFI):
                return []
            return [operations.pair_wifi_task(self.config, address, value)]

        if action is TextAction.SETTING:
            setting_type = SettingType(state.pending_text_context)
            device = state.setting_device
            try:
                normalized = get_setting_handler(setting_type).validate(value)
            except InvalidParameterError as exc:
                return self._reject_input(str(exc))
            self._back_to_menu()
            if device is None or not self._begin(Activity.CHANGING_SETTING):
                return []
            return [
                operations.change_setting_task(self.config, device, setting_type, normalized)
            ]

        self._back_to_menu()
        return []

    # ----------------------------------------------------------------- #
    # Recording
    # ----------------------------------------------------------------- #

    def _stop_recording(self) -> list[Task]:
        state = self.state
        if state.recording_stopping:
            self._log("Recording is already being saved", Severity.INFO)
            return []
        recording = state.recording
        if recording is None:
            self._log("Recording is still starting", Severity.INFO)
            return []
        # The handle moves into the stop task so a second Esc cannot stop it again
        state.recording = None
        state.recording_stopping = True
        return [operations.stop_recording_task(recording)]

    def _on_recording_started(self, msg: RecordingStarted) -> list[Task]:
        if msg.error is not None or msg.recording is None:
            self._finish(Activity.RECORDING)
            self._log(f"Failed to start recording: {msg.error}", Severity.ERROR)
            return []
        self.state.recording = msg.recording
        self._log(
            f"Recording {msg.recording.serial}. Press Esc in the menu to stop and save.",
            Severity.INFO,
        )
        return []

    # ----------------------------------------------------------------- #
    # Results
    # ----------------------------------------------------------------- #

    def _on_outcome(self, rule: _OutcomeRule, msg: OperationResult) -> list[Task]:
        self._finish(rule.activity)
        if msg.captured_lines:
            logger.debug(
                "captured_output",
                activity=rule.activity.value,
                lines=list(msg.captured_lines),
            )

        if rule.activity is Activity.RECORDING:
            self.state.recording_stopping = False
        elif rule.activity is Activity.DAY_NIGHT:
            self.state.live_output.clear()

        if not msg.success:
            self._log(f"{rule.failure_prefix}{msg.message}", Severity.ERROR, msg.captured_lines)
            return []

        self._log(msg.message, Severity.SUCCESS, msg.captured_lines)
        tasks: list[Task] = []
        if rule.refreshes_devices:
            tasks.extend(self._request_devices())
        if isinstance(msg, EmulatorLaunchDone):
            tasks.append(
                refresh.delayed_refresh(self.config.emulator_refresh_delay_s, self.stopped)
            )
        return tasks

    def _on_devices_loaded(self, msg: DevicesLoaded) -> list[Task]:
        state = self.state
        self._finish(Activity.LOADING_DEVICES)
        state.devices_loaded = True
        if msg.error is not None:
            logger.warning("device_enumeration_failed", error=msg.error)
            state.devices = []
            state.device_error = msg.error
        else:
            state.devices = list(msg.devices)
            state.device_error = None
        state.selected_device_index = clamp_index(
            state.selected_device_index, len(state.devices)
        )
        if state.devices_stale:
            state.devices_stale = False
            return self._request_devices()
        return []

    def _on_avds_loaded(self, msg: AvdsLoaded) -> list[Task]:
        state = self.state
        state.avds_loading = False
        if msg.error is not None:
            state.avds = []
            self._log(f"Failed to load emulators: {msg.error}", Severity.ERROR)
            if state.mode is Mode.EMULATOR_SELECT:
                self._back_to_menu()
        else:
            state.avds = list(msg.avds)
        state.selected_emulator_index = clamp_index(
            state.selected_emulator_index, len(state.avds)
        )
        return []

    def _on_setting_loaded(self, msg: SettingLoaded) -> list[Task]:
        state = self.state
        self._finish(Activity.LOADING_SETTING)
        if msg.error is not None or msg.info is None:
            self._log(f"Failed to get current setting: {msg.error}", Severity.ERROR)
            return []
        if state.mode is not Mode.MENU:
            logger.info("setting_prompt_dropped", setting=msg.setting_type.value)
            return []

        info = msg.info
        name = info.display_name
        prompt = (
            f"Device: {msg.device.serial}\n"
            f"Physical {name}: {info.default}\n"
            f"Current {name}: {info.current}\n\n"
            f"{info.input_prompt}"
        )
        self._open_text_input(TextAction.SETTING, prompt, context=msg.setting_type.value)
        state.setting_device = msg.device
        state.setting_info = info
        return []

    def _on_live_output(self, msg: LiveOutput) -> list[Task]:
        self.state.live_output.append(msg.line)
        logger.debug("live_output", line=msg.line)
        return []

    # ----------------------------------------------------------------- #
    # Refresh
    # ----------------------------------------------------------------- #

    def _on_refresh_requested(self, msg: RefreshRequested) -> list[Task]:
        if self.stopped.is_set():
            return []
        logger.debug("refresh_requested", reason=msg.reason, identifiers=list(msg.identifiers))
        tasks: list[Task] = []
        if msg.reason == refresh.REASON_DEVICE_CHANGE and self.state.watcher_running:
            tasks.append(self._watch_task())
        elif msg.reason == refresh.REASON_PERIODIC:
            tasks.append(
                refresh.periodic_refresh(self.config.refresh_interval_s, self.stopped)
            )
        tasks.extend(self._request_devices())
        return tasks

    def _on_watcher_stopped(self, msg: WatcherStopped) -> list[Task]:
        self.state.watcher_running = False
        if self.stopped.is_set():
            return []
        if msg.error is not None:
            self._log(f"Device watcher stopped: {msg.error}", Severity.ERROR)
        else:
            self._log("Device watcher stopped; using periodic refresh", Severity.INFO)
        return []
