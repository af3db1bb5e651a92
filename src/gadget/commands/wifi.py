"""Wireless debugging: pair, connect, and disconnect by address."""

from __future__ import annotations

import time

import click

from gadget.bridge.executor import run_adb
from gadget.config import GadgetConfig
from gadget.exceptions import BridgeError, InvalidParameterError
from gadget.utils.logging import get_logger

logger = get_logger(__name__)

PORT_SWITCH_SECONDS = 2.0
_STALE_MDNS_MARKER = "_adb-tls-connect._tcp"


def parse_address(address: str) -> tuple[str, int | None]:
    """Split ``host`` or ``host:port``; the port is None when omitted.

    Raises:
        InvalidParameterError: Empty host, non-numeric or out-of-range port,
            or more than one colon.
    """
    address = address.strip()
    parts = address.split(":")
    if not parts[0]:
        raise InvalidParameterError(f"invalid IP address format: {address}")
    if len(parts) == 1:
        return parts[0], None
    if len(parts) != 2:
        raise InvalidParameterError(f"invalid IP address format: {address}")
    try:
        port = int(parts[1])
    except ValueError:
        raise InvalidParameterError(f"invalid port number: {parts[1]}") from None
    if not 1 <= port <= 65535:
        raise InvalidParameterError(f"port number out of range: {port}")
    return parts[0], port


def validate_pairing_code(code: str) -> bool:
    code = code.strip()
    return len(code) == 6 and code.isdigit()


def normalize_address(config: GadgetConfig, address: str) -> str:
    """Return ``host:port``, filling in the static port when omitted."""
    host, port = parse_address(address)
    return f"{host}:{port if port is not None else config.adb_static_port}"


def _try_connect(config: GadgetConfig, address: str) -> tuple[bool, str]:
    try:
        output = run_adb(config, "connect", address, check=False)
    except BridgeError as exc:
        return False, str(exc)
    return "connected to" in output, output.strip()


def connect(config: GadgetConfig, address: str) -> str:
    """Connect to a device over the network and pin it to the static port.

    When the device answered on another port it is switched with
    ``adb tcpip`` and reconnected on the static port.

    Returns:
        The address the device is connected on.

    Raises:
        InvalidParameterError: Malformed address.
        BridgeError: The device refused the connection.
    """
    host, port = parse_address(address)
    static_port = config.adb_static_port
    if port is None:
        port = static_port
    target = f"{host}:{port}"

    click.echo(f"Attempting to connect to {target}...")
    ok, output = _try_connect(config, target)
    if not ok:
        logger.warning("wifi_connect_rejected", address=target, output=output)
        raise BridgeError(
            f"failed to connect to {target}. Device may need pairing first", detail=output
        )
    click.echo(f"Successfully connected to {target}")

    if port != static_port:
        click.echo(f"Switching device to standard port {static_port}...")
        try:
            run_adb(config, "tcpip", str(static_port), serial=target)
        except BridgeError as exc:
            click.echo(f"Warning: failed to switch to standard port: {exc}")
            click.echo(f"Device will remain on port {port}")
            return target

        time.sleep(PORT_SWITCH_SECONDS)
        standard = f"{host}:{static_port}"
        click.echo(f"Connecting to standard port {standard}...")
        ok, _ = _try_connect(config, standard)
        if ok:
            click.echo(f"Successfully switched to standard port {standard}")
            click.echo(f"Disconnecting from temporary port {target}...")
            run_adb(config, "disconnect", target, check=False)
            return standard
        click.echo("Warning: failed to connect to standard port, keeping original connection")

    cleanup_stale_connections(config)
    return target


def disconnect(config: GadgetConfig, address: str) -> str:
    """Disconnect a network device; returns the normalized address.

    Raises:
        InvalidParameterError: Malformed address.
        BridgeError: adb refused, usually because the device was not connected.
    """
    target = normalize_address(config, address)
    click.echo(f"Disconnecting from {target}...")
    try:
        run_adb(config, "disconnect", target)
    except BridgeError as exc:
        if exc.returncode == 1:
            raise BridgeError(f"device {target} was not connected") from exc
        raise BridgeError(f"failed to disconnect from {target}: {exc}") from exc

    click.echo(f"Disconnected from {target}")
    cleanup_stale_connections(config)
    return target


def pair(config: GadgetConfig, address: str, code: str) -> str:
    """Pair with a device using the code shown in its wireless-debugging screen.

    Raises:
        InvalidParameterError: Malformed address, or a code that is not six digits.
        BridgeError: The pair command failed or did not report success.
    """
    host, port = parse_address(address)
    if port is None:
        raise InvalidParameterError(f"pairing address needs a port: {address}")
    code = code.strip()
    if not validate_pairing_code(code):
        raise InvalidParameterError(f"pairing code must be 6 digits: {code}")
    target = f"{host}:{port}"

    click.echo(f"Pairing with {target} using code {code}...")
    try:
        output = run_adb(config, "pair", target, code)
    except BridgeError as exc:
        raise BridgeError(f"pairing command failed: {exc}") from exc

    if "Successfully paired" not in output:
        raise BridgeError(f"pairing failed: {output.strip()}")

    click.echo(f"Successfully paired with {target}")
    click.echo("Connect with the address shown under 'IP address & Port' on the phone;")
    click.echo(f"the device is then moved to port {config.adb_static_port}.")
    cleanup_stale_connections(config)
    return target


def stale_connection_ids(devices_output: str) -> list[str]:
    """Serials of mDNS auto-connect entries in ``adb devices`` output."""
    stale = []
    for line in devices_output.splitlines():
        line = line.strip()
        if _STALE_MDNS_MARKER in line and "device" in line:
            parts = line.split()
            if len(parts) >= 2:
                stale.append(parts[0])
    return stale


def cleanup_stale_connections(config: GadgetConfig) -> list[str]:
    """Disconnect leftover mDNS entries that shadow the static-port connection."""
    try:
        output = run_adb(config, "devices")
    except BridgeError as exc:
        logger.debug("wifi_cleanup_skipped", error=str(exc))
        return []

    stale = stale_connection_ids(output)
    for serial in stale:
        click.echo(f"Cleaning up stale WiFi connection: {serial}")
        run_adb(config, "disconnect", serial, check=False)
    return stale
