from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Optional
import logging

from shadanga.client.errors import DeviceCheckError

logger = logging.getLogger(__name__)

NATIVE_PLATFORMS = ("android", "ios")

FLIGHT_MODE_INSTRUCTIONS = {
    "android": "Swipe down from the top of your screen and tap the airplane icon, or go to Settings > Network & Internet > Airplane mode",
    "ios": "Open Control Center by swiping down from the top-right corner (or up from the bottom on older devices) and tap the airplane icon",
}
DEFAULT_FLIGHT_MODE_INSTRUCTIONS = "Please enable airplane mode on your device to prevent interruptions"

EARPHONE_LABEL_HINTS = ("headphone", "earphone", "headset", "bluetooth", "airpods")
EARPHONE_ROUTES = ("headphones", "bluetooth", "headset", "usb")


def get_flight_mode_instructions(platform: str) -> str:
    return FLIGHT_MODE_INSTRUCTIONS.get(platform.lower(), DEFAULT_FLIGHT_MODE_INSTRUCTIONS)


class DeviceBridge(ABC):
    """Platform probes exposed by the native shell."""

    @abstractmethod
    async def is_network_connected(self) -> bool:
        pass

    @abstractmethod
    async def get_audio_route(self) -> str:
        pass


class DeviceCapabilities(ABC):
    platform: str

    @abstractmethod
    async def is_flight_mode_enabled(self) -> bool:
        pass

    @abstractmethod
    async def are_earphones_connected(self) -> bool:
        pass

    def flight_mode_instructions(self) -> str:
        return get_flight_mode_instructions(self.platform)


class NativeDeviceCapabilities(DeviceCapabilities):
    def __init__(self, platform: str, bridge: DeviceBridge):
        self.platform = platform
        self.bridge = bridge

    async def is_flight_mode_enabled(self) -> bool:
        # Losing every network interface is the closest observable proxy.
        try:
            return not await self.bridge.is_network_connected()
        except Exception as e:
            raise DeviceCheckError(f"Could not read network status: {e}") from e

    async def are_earphones_connected(self) -> bool:
        try:
            route = await self.bridge.get_audio_route()
        except Exception as e:
            raise DeviceCheckError(f"Could not read audio route: {e}") from e
        return (route or "").lower() in EARPHONE_ROUTES


class WebDeviceCapabilities(DeviceCapabilities):
    """Browser-like environment: flight mode cannot be observed, audio outputs may be listed."""

    platform = "web"

    def __init__(self, list_audio_outputs: Optional[Callable[[], Awaitable[List[str]]]] = None):
        self.list_audio_outputs = list_audio_outputs

    async def is_flight_mode_enabled(self) -> bool:
        raise DeviceCheckError("Airplane mode detection is only available on native platforms")

    async def are_earphones_connected(self) -> bool:
        if self.list_audio_outputs is None:
            raise DeviceCheckError("Audio output devices cannot be listed here")
        try:
            labels = await self.list_audio_outputs()
        except Exception as e:
            raise DeviceCheckError(f"Could not list audio outputs: {e}") from e
        return len(labels) > 1 or any(
            hint in label.lower() for label in labels for hint in EARPHONE_LABEL_HINTS
        )


def select_device_capabilities(
    platform: str,
    bridge: Optional[DeviceBridge] = None,
    list_audio_outputs: Optional[Callable[[], Awaitable[List[str]]]] = None,
) -> DeviceCapabilities:
    platform = platform.lower()
    if platform in NATIVE_PLATFORMS and bridge is not None:
        return NativeDeviceCapabilities(platform, bridge)
    if platform in NATIVE_PLATFORMS:
        logger.warning(f"No device bridge for {platform}; using web checks")
    return WebDeviceCapabilities(list_audio_outputs)
