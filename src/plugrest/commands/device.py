"""Command group: device information, properties, location and enrollment."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from plugrest.commands._base import PlugGroup
from plugrest.commands.data import parse_value

if TYPE_CHECKING:
    from plugrest.commands._context import AppContext

_DEVICE_EXAMPLES = """\
  plugrest device show
  plugrest device prop set firmware '"1.2.0"'
  plugrest device location set --lon 12.49 --lat 41.89
  plugrest device enroll-product mod-abc SN0001 --pass activation-code"""

_of_option = click.option(
    "--of", default=None, help="Plug-id of another device (default: this device)."
)


@click.group(cls=PlugGroup, examples=_DEVICE_EXAMPLES)
def device() -> None:
    """Inspect, configure and enroll devices."""


# --- Information ---


@device.command(
    examples="""\
  plugrest device show
  plugrest --json device show --of dev-abc"""
)
@_of_option
@click.pass_obj
def show(app: AppContext, of: str | None) -> None:
    """Show device information."""
    from plugrest.services.device import DeviceService

    app.emit(DeviceService(app.client).show(of))


@device.command(
    "set",
    examples="""\
  plugrest device set --name "Kitchen sensor"
  plugrest device set --of dev-abc --status disabled""",
)
@_of_option
@click.option("--name", default=None, help="New device name.")
@click.option("--status", default=None, help="New device status.")
@click.pass_obj
def set_device(app: AppContext, of: str | None, name: str | None, status: str | None) -> None:
    """Update the name or status of a device."""
    from plugrest.services.device import DeviceService

    app.emit(DeviceService(app.client).update(of=of, name=name, status=status))


# --- Properties ---


@device.group(
    examples="""\
  plugrest device prop get firmware
  plugrest device prop set limits '{"max": 30}'
  plugrest device prop rm limits"""
)
def prop() -> None:
    """Read and write custom device properties."""


@prop.command("get")
@click.argument("key")
@_of_option
@click.pass_obj
def prop_get(app: AppContext, key: str, of: str | None) -> None:
    """Read property KEY."""
    from plugrest.services.device import DeviceService

    app.emit(DeviceService(app.client).get_prop(key, of=of))


@prop.command("set")
@click.argument("key")
@click.argument("value")
@_of_option
@click.pass_obj
def prop_set(app: AppContext, key: str, value: str, of: str | None) -> None:
    """Set property KEY to VALUE (JSON, or a plain string)."""
    from plugrest.services.device import DeviceService

    app.emit(DeviceService(app.client).set_prop(key, parse_value(value), of=of))


@prop.command("rm")
@click.argument("key")
@_of_option
@click.pass_obj
def prop_rm(app: AppContext, key: str, of: str | None) -> None:
    """Remove property KEY."""
    from plugrest.services.device import DeviceService

    app.emit(DeviceService(app.client).remove_prop(key, of=of))


# --- Location ---


@device.group(
    examples="""\
  plugrest device location get
  plugrest device location set --lon -0.12 --lat 51.5 --accuracy 20"""
)
def location() -> None:
    """Read and write the device location."""


@location.command("get")
@_of_option
@click.pass_obj
def location_get(app: AppContext, of: str | None) -> None:
    """Read the stored location."""
    from plugrest.services.device import DeviceService

    app.emit(DeviceService(app.client).get_location(of=of))


@location.command("set")
@click.option("--lon", type=float, required=True, help="Longitude in [-180, 180).")
@click.option("--lat", type=float, required=True, help="Latitude in [-90, 90].")
@click.option("--accuracy", type=float, default=None, help="Accuracy radius in meters.")
@click.option("--alt", type=float, default=None, help="Altitude in meters.")
@click.option("--at", default=None, help="Sampling timestamp.")
@_of_option
@click.pass_obj
def location_set(
    app: AppContext,
    lon: float,
    lat: float,
    accuracy: float | None,
    alt: float | None,
    at: str | None,
    of: str | None,
) -> None:
    """Store the device location."""
    from plugrest.services.device import DeviceService

    app.emit(
        DeviceService(app.client).set_location(lon, lat, r=accuracy, z=alt, t=at, of=of)
    )


# --- Enrollment and control ---


@device.command(
    "enroll-prototype",
    examples="""\
  plugrest device enroll-prototype "Bench prototype"
  plugrest device enroll-prototype proto --hwid SN0001 --pass secret""",
)
@click.argument("name")
@click.option("--hwid", default=None, help="Hardware id (serial).")
@click.option("--pass", "password", default=None, help="Device password.")
@click.pass_obj
def enroll_prototype(
    app: AppContext, name: str, hwid: str | None, password: str | None
) -> None:
    """Register a new prototype (master credentials required)."""
    from plugrest.services.device import DeviceService

    app.emit(DeviceService(app.client).enroll_prototype(name, hwid=hwid, password=password))


@device.command(
    "enroll-product",
    examples="""\
  plugrest device enroll-product mod-abc SN0001 --pass activation-code""",
)
@click.argument("model")
@click.argument("hwid")
@click.option("--pass", "password", required=True, help="Activation password.")
@click.pass_obj
def enroll_product(app: AppContext, model: str, hwid: str, password: str) -> None:
    """Enroll a production device of MODEL with serial HWID."""
    from plugrest.services.device import DeviceService

    app.emit(DeviceService(app.client).enroll_product(model, hwid, password))


@device.command(
    examples="""\
  plugrest device control mod-abc SN0001 --pass activation-code
  plugrest device control mod-abc SN0001 --pass code --enroll --name remote"""
)
@click.argument("model")
@click.argument("ctrl")
@click.option("--pass", "password", required=True, help="Activation password of CTRL.")
@click.option("--hwid", default=None, help="Hardware id of this controller.")
@click.option("--name", default=None, help="Name of this controller.")
@click.option("--enroll", is_flag=True, help="Register this client as a new controller.")
@click.pass_obj
def control(
    app: AppContext,
    model: str,
    ctrl: str,
    password: str,
    hwid: str | None,
    name: str | None,
    enroll: bool,
) -> None:
    """Take control of the MODEL device with serial CTRL."""
    from plugrest.services.device import DeviceService

    app.emit(
        DeviceService(app.client).control(
            model, ctrl, password, hwid=hwid, name=name, enroll=enroll
        )
    )


@device.command(
    examples="""\
  plugrest device uncontrol dev-abc
  plugrest device uncontrol dev-abc dev-def --of dev-controller"""
)
@click.argument("controlled", nargs=-1, required=True)
@_of_option
@click.pass_obj
def uncontrol(app: AppContext, controlled: tuple[str, ...], of: str | None) -> None:
    """Stop controlling the CONTROLLED devices."""
    from plugrest.services.device import DeviceService

    target: str | list[str] = controlled[0] if len(controlled) == 1 else list(controlled)
    app.emit(DeviceService(app.client).uncontrol(target, of=of))


@device.command(
    examples="""\
  plugrest device unenroll
  plugrest device unenroll --of dev-abc --of dev-def"""
)
@click.option("--of", multiple=True, help="Plug-id to unenroll (repeatable).")
@click.pass_obj
def unenroll(app: AppContext, of: tuple[str, ...]) -> None:
    """Unregister this device, or the devices given with --of."""
    from plugrest.services.device import DeviceService

    target: str | list[str] | None = None
    if len(of) == 1:
        target = of[0]
    elif of:
        target = list(of)
    app.emit(DeviceService(app.client).unenroll(target))
