import time
from functools import wraps

import click
from loguru import logger

from benchpsu.device import MockResourceManager, PowerSupplyController
from benchpsu.meas import CurrentPoller
from benchpsu.types import ControllerConfig, ParsePolicy, PollerConfig, PsError
from benchpsu.types.config import SessionConfig
from benchpsu.util import (
    DEFAULT_BAUD_RATE,
    DEFAULT_LOGLEVEL,
    DEFAULT_SAMPLE_INTERVAL,
    start_log,
)
from benchpsu.util.check_hw import get_hw_ports, list_visa_devices

MOCK_DEFAULT_PORT = "COM5"


def print_tree(cmd, prefix="", parent_ctx=None):
    """Print command tree starting from given command."""
    ctx = click.Context(cmd, info_name=cmd.name, parent=parent_ctx)

    # Only print root name if no parent
    if not parent_ctx:
        click.echo(cmd.name)

    for sub in sorted(cmd.list_commands(ctx)):
        sub_cmd = cmd.get_command(ctx, sub)
        click.echo(f"{prefix}└── {sub}")
        if isinstance(sub_cmd, click.Group):
            print_tree(sub_cmd, prefix + "    ", ctx)


def tree_option(f):
    """Add --tree option to command."""

    def callback(ctx, param, value):
        if not value or ctx.resilient_parsing:
            return
        print_tree(ctx.command)
        ctx.exit()

    return click.option(
        "--tree",
        is_flag=True,
        help="Show command tree from this point",
        expose_value=False,
        is_eager=True,
        callback=callback,
    )(f)


def psu_options(f):
    """Connection and logging options shared by every instrument command.

    The wrapped command receives an opened PowerSupplyController as `psu`
    and the controller is closed again when the command returns.
    """

    @click.option(
        "--port",
        "-p",
        default="",
        help='Serial port of the supply (e.g. "COM5")',
    )
    @click.option(
        "--mock/--no-mock",
        default=False,
        help="Talk to a simulated supply instead of hardware (default: disabled)",
    )
    @click.option(
        "--baud-rate",
        "-b",
        default=DEFAULT_BAUD_RATE,
        type=int,
        help=f"Serial baud rate (default: {DEFAULT_BAUD_RATE})",
    )
    @click.option(
        "--strict/--lenient",
        default=False,
        help="Fail on unparsable numeric replies instead of reading 0.0 "
        + "(default: lenient)",
    )
    @click.option(
        "--log-to-file/--no-log-to-file",
        "-ltf/",
        default=False,
        help="Enable/disable logging to file (default: disabled)",
    )
    @click.option(
        "--log-to-stdout/--no-log-to-stdout",
        "-lts/",
        default=False,
        help="Enable/disable console logging (default: disabled)",
    )
    @click.option(
        "--log-level",
        "-ll",
        default=DEFAULT_LOGLEVEL,
        help="Logging level (TRACE, DEBUG, INFO, WARNING, ERROR) (default: INFO)",
    )
    @wraps(f)
    def wrapper(
        port,
        mock,
        baud_rate,
        strict,
        log_to_file,
        log_to_stdout,
        log_level,
        **kwargs,
    ):
        start_log(
            log_to_file=log_to_file,
            log_to_stdout=log_to_stdout,
            log_level=log_level.upper(),
        )
        if mock and not port:
            port = MOCK_DEFAULT_PORT
        if not port:
            raise click.UsageError("Must specify --port (or use --mock)")

        config = ControllerConfig(
            session=SessionConfig(baud_rate=baud_rate),
            parse_policy=ParsePolicy.STRICT if strict else ParsePolicy.LENIENT,
        )
        factory = MockResourceManager.for_port(port) if mock else None
        psu = PowerSupplyController(config=config, resource_manager_factory=factory)
        try:
            check(psu.open(port), f"open port {port}")
            return f(psu=psu, **kwargs)
        finally:
            psu.close()

    return wrapper


def check(err: PsError, action: str) -> None:
    """Abort the command with exit status 1 unless `err` is SUCCESS."""
    if err is not PsError.SUCCESS:
        logger.error("Failed to {}: {}", action, err.name)
        raise click.ClickException(f"Failed to {action}: {err.describe()}")


@click.group()
@tree_option
def cli():
    """benchpsu - bench power supply control.

    Drive a programmable bench power supply on a serial VISA bus:

    - Switch the output on and off

    - Set the output voltage and current limits

    - Read back voltage and current, or watch the current for changes
    """
    pass


@cli.command()
def ports():
    """List all available COM ports.

    Displays information about serial/COM ports:
    - Port name (e.g. COM1, /dev/ttyUSB0)
    - Device description
    - Hardware information
    """
    ports = get_hw_ports()

    click.echo("\nAvailable COM ports:")
    click.echo("-------------------")

    if not ports:
        click.echo("No COM ports found")
        click.echo("")
        return

    for port, info in ports.items():
        click.echo(f"\nPort: {port}")
        if len(info) >= 2:
            description, hwid = info[:2]
            click.echo(f"Description: {description}")
            click.echo(f"Hardware ID: {hwid}")

    click.echo("")


@cli.command()
@click.option(
    "--filter",
    "-f",
    "filter_string",
    default="ASRL",
    help='Only show resources containing this text (default: "ASRL")',
)
@click.option(
    "--idn/--no-idn", default=False, help="Query *IDN? on each resource"
)
def visa(filter_string, idn):
    """List VISA resources."""
    devices = list_visa_devices(filter_string=filter_string or None, query_idn=idn)

    click.echo("\nVISA resources:")
    click.echo("---------------")
    if not devices:
        click.echo("No VISA resources found")
        click.echo("")
        return
    for resource, ident in devices.items():
        click.echo(f"{resource}  {ident}".rstrip())
    click.echo("")


@cli.command()
@psu_options
def status(psu: PowerSupplyController):
    """Show output state, voltage and current."""
    err, state = psu.is_on()
    check(err, "read output state")
    err, voltage = psu.read_voltage()
    check(err, "read voltage")
    err, current = psu.read_current()
    check(err, "read current")

    click.echo(f"\nPower supply on {psu.port} ({psu.session.resource_name}):")
    click.echo(f"Output: {'ON' if state else 'OFF'}")
    click.echo(f"Voltage: {voltage:.3f} V")
    click.echo(f"Current: {current * 1000:.3f} mA")
    click.echo("")


@cli.command()
@psu_options
def on(psu: PowerSupplyController):
    """Switch the output on."""
    check(psu.turn_on(), "turn on")
    click.echo("Output ON")


@cli.command()
@psu_options
def off(psu: PowerSupplyController):
    """Switch the output off."""
    check(psu.turn_off(), "turn off")
    click.echo("Output OFF")


@cli.command()
@click.option(
    "--voltage",
    "-v",
    type=float,
    default=None,
    help="Voltage to apply when switching on",
)
@psu_options
def toggle(psu: PowerSupplyController, voltage):
    """Flip the output state."""
    err, state = psu.toggle_output(restore_voltage=voltage)
    check(err, "toggle output")
    click.echo(f"Output {'ON' if state else 'OFF'}")


@cli.command(name="set")
@click.option("--voltage", "-v", type=float, help="Set output voltage (V)")
@click.option("--current", "-c", type=float, help="Set output current (A)")
@click.option("--max-current", "-m", type=float, help="Set current limit (A)")
@psu_options
def set_(psu: PowerSupplyController, voltage, current, max_current):
    """Set output voltage, current and/or current limit."""
    if voltage is None and current is None and max_current is None:
        raise click.UsageError("Must specify --voltage, --current or --max-current")

    if voltage is not None:
        check(psu.write_voltage(voltage), f"set voltage to {voltage} V")
        click.echo(f"Set voltage to {voltage}V")
    if current is not None:
        check(psu.set_current(current), f"set current to {current} A")
        click.echo(f"Set current to {current}A")
    if max_current is not None:
        check(psu.write_max_current(max_current), f"set current limit to {max_current} A")
        click.echo(f"Set current limit to {max_current}A")


@cli.command()
@click.option(
    "--watch/--no-watch", "-w/", default=False, help="Continuously monitor current"
)
@click.option(
    "--interval",
    "-i",
    type=click.FloatRange(min=0, min_open=True),
    default=DEFAULT_SAMPLE_INTERVAL,
    help="Sample interval for watch mode (seconds)",
)
@click.option(
    "--duration",
    "-d",
    type=float,
    default=0.0,
    help="Stop watching after this many seconds (default: until Ctrl+C)",
)
@psu_options
def read(psu: PowerSupplyController, watch, interval, duration):
    """Read voltage and current, or watch the current for changes."""
    if not watch:
        err, voltage = psu.read_voltage()
        check(err, "read voltage")
        err, current = psu.read_current()
        check(err, "read current")
        click.echo(f"Voltage: {voltage:.6f} V")
        click.echo(f"Current: {current * 1000:.6f} mA")
        return

    def on_current_changed(current: float):
        click.echo(f"Current: {current * 1000:.6f} mA")

    poller = CurrentPoller(
        psu, on_current_changed, config=PollerConfig(sample_interval=interval)
    )
    click.echo("Press Ctrl+C to stop monitoring")
    poller.start()
    try:
        start = time.monotonic()
        while not duration or time.monotonic() - start < duration:
            time.sleep(min(interval, 0.1))
    except KeyboardInterrupt:
        click.echo("\nMonitoring stopped")
    finally:
        poller.stop()
