# batch_audit/audit/devices.py
from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass(frozen=True)
class ScreenEmulation:
    mobile: bool
    width: int
    height: int
    device_scale_factor: float
    disabled: bool = False


@dataclass(frozen=True)
class Throttling:
    """Everything zeroed: audits measure the host network, not an emulated one."""
    rtt_ms: int = 0
    throughput_kbps: int = 0
    cpu_slowdown_multiplier: int = 1
    request_latency_ms: int = 0
    download_throughput_kbps: int = 0
    upload_throughput_kbps: int = 0


@dataclass(frozen=True)
class DeviceProfile:
    name: str
    form_factor: str
    screen_emulation: ScreenEmulation
    user_agent: str
    throttling: Throttling = field(default_factory=Throttling)

    def lighthouse_flags(self) -> List[str]:
        """CLI flags that apply this profile to a Lighthouse run."""
        screen = self.screen_emulation
        t = self.throttling
        flags = [
            f"--form-factor={self.form_factor}",
            f"--emulated-user-agent={self.user_agent}",
            "--throttling-method=provided",
            f"--throttling.rttMs={t.rtt_ms}",
            f"--throttling.throughputKbps={t.throughput_kbps}",
            f"--throttling.cpuSlowdownMultiplier={t.cpu_slowdown_multiplier}",
            f"--throttling.requestLatencyMs={t.request_latency_ms}",
            f"--throttling.downloadThroughputKbps={t.download_throughput_kbps}",
            f"--throttling.uploadThroughputKbps={t.upload_throughput_kbps}",
        ]
        if screen.disabled:
            flags.append("--screenEmulation.disabled")
        else:
            flags += [
                f"--screenEmulation.mobile={str(screen.mobile).lower()}",
                f"--screenEmulation.width={screen.width}",
                f"--screenEmulation.height={screen.height}",
                f"--screenEmulation.deviceScaleFactor={screen.device_scale_factor}",
            ]
        return flags


MOBILE = DeviceProfile(
    name="mobile",
    form_factor="mobile",
    screen_emulation=ScreenEmulation(mobile=True, width=412, height=823, device_scale_factor=1.75),
    user_agent="Mozilla/5.0 (iPhone; CPU iPhone OS 10_3 like Mac OS X)",
)

DESKTOP = DeviceProfile(
    name="desktop",
    form_factor="desktop",
    screen_emulation=ScreenEmulation(mobile=False, width=1350, height=940, device_scale_factor=1, disabled=True),
    user_agent="Mozilla/5.0 (Windows NT 10.0; Win64; x64)",
)

# Iteration order matters: results are reported mobile first, then desktop.
DEVICE_PROFILES: Tuple[DeviceProfile, ...] = (MOBILE, DESKTOP)
