# layout_profiler/collector/devices.py - Device emulation profiles
"""
Device emulation profiles.

The profiles themselves come from Playwright's device descriptors
(``playwright.devices``); this module only fixes which of them the profiler
offers, so names can be validated before a browser is started.
"""

from typing import Any, Dict, List, Mapping


DEVICES = (
    'Desktop Chrome',
    'Moto G4',
    'Pixel 5',
    'Galaxy S9+',
    'iPhone SE',
    'iPhone 12',
    'iPad Mini',
)

# Descriptor keys that are not browser context options
_NON_CONTEXT_KEYS = ('default_browser_type',)


def device_names() -> List[str]:
    """Names of all offered devices"""
    return list(DEVICES)


def get_device(descriptors: Mapping[str, Dict[str, Any]], name: str) -> Dict[str, Any]:
    """
    Get browser context options for a device.

    Args:
        descriptors: Playwright device descriptors (``playwright.devices``)
        name: Device name as listed in DEVICES

    Returns:
        Copy of the device's context options, ready for ``browser.new_context``

    Raises:
        KeyError: If the device is not offered or Playwright does not know it
    """
    if name not in DEVICES:
        raise KeyError(name)

    profile = dict(descriptors[name])
    for key in _NON_CONTEXT_KEYS:
        profile.pop(key, None)
    if profile.get('viewport'):
        profile['viewport'] = dict(profile['viewport'])
    return profile
