"""Audit package

Modules:
- devices: the two built-in emulation profiles (mobile, desktop).
- chrome: one isolated headless Chrome per audit.
- lighthouse: drives the Lighthouse CLI against that Chrome.
- naming: report folder / file naming.
- executor: one (url, device) audit -> stored report or failed result.
- runner: the sequential batch over paths × devices.
"""
from batch_audit.audit.devices import DEVICE_PROFILES, DESKTOP, MOBILE, DeviceProfile

__all__ = ['DEVICE_PROFILES', 'DESKTOP', 'MOBILE', 'DeviceProfile']
