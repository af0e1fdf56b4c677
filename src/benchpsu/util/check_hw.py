from typing import Dict, Optional

import pyvisa
import serial.tools.list_ports
from loguru import logger

from .defaults import MIN_PORT_LENGTH


def get_hw_ports():
    port_dict = dict()
    for p in list(serial.tools.list_ports.comports()):
        # Only include if there's actual hardware info
        if p.hwid != "n/a":
            port_dict[p.device] = tuple(p)[1:]
    return port_dict


def port_to_resource_name(port: str) -> Optional[str]:
    """Map an OS serial port name onto a VISA serial resource name.

    The first three characters (the "COM" prefix) are dropped and the rest
    is wrapped as ASRL<N>::INSTR, so "COM5" becomes "ASRL5::INSTR".
    Returns None for ports shorter than four characters.
    """
    if not port or len(port) < MIN_PORT_LENGTH:
        return None
    return f"ASRL{port[3:]}::INSTR"


def list_visa_devices(
    filter_string: Optional[str] = None,
    query_idn: bool = False,
    resource_manager: Optional[pyvisa.ResourceManager] = None,
) -> Dict[str, str]:
    """List available VISA resources, optionally asking each for *IDN?.

    Args:
        filter_string: Optional string to filter resources (e.g. "ASRL")
        query_idn: If True, open each resource and query its identification.
            Many bench supplies on a plain serial line do not answer *IDN?,
            so this is off by default.
        resource_manager: Optional ResourceManager to use. If None, creates one

    Returns:
        Dictionary mapping VISA addresses to IDN strings ("" when not queried,
        "Unknown device" when the query failed).
    """
    owns_rm = False
    if resource_manager is None:
        resource_manager = pyvisa.ResourceManager()
        owns_rm = True

    try:
        devices = {}
        for resource in resource_manager.list_resources():
            if filter_string and filter_string not in resource:
                continue

            if not query_idn:
                devices[resource] = ""
                continue

            inst = None
            try:
                inst = resource_manager.open_resource(resource)
                inst.timeout = 1000
                devices[resource] = inst.query("*IDN?").strip()
            except (pyvisa.errors.VisaIOError, OSError, ValueError) as e:
                logger.debug(f"Error with resource {resource}: {str(e)}")
                devices[resource] = "Unknown device"
            finally:
                if inst is not None:
                    try:
                        inst.close()
                    except pyvisa.errors.VisaIOError:
                        pass

            logger.debug(f"Found device at {resource}: {devices[resource]}")

        return devices

    finally:
        if owns_rm:
            resource_manager.close()
