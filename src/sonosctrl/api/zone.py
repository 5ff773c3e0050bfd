"""Zone group topology service."""

import dataclasses
import logging
from collections.abc import Mapping

from sonosctrl.api.soap import Service, SoapClient
from sonosctrl.api.xmlscan import decode_entities, extract_attribute, extract_value
from sonosctrl.models.device import Device
from sonosctrl.models.group import Group

logger = logging.getLogger(__name__)


def parse_groups(xml: str, known_devices: Mapping[str, Device]) -> list[Group]:
    """Parse a GetZoneGroupState response into groups.

    The ZoneGroupState element holds an escaped inner document with one
    ZoneGroup per group. Members whose UUID is not in known_devices are
    dropped, and a group whose coordinator is not among its known members
    is dropped entirely.

    Args:
        xml: GetZoneGroupState response body, or the bare ZoneGroupState
            document.
        known_devices: Resolved devices keyed by device ID.

    Returns:
        Groups in topology order, with volume 0 and unmuted.
    """
    inner = extract_value("ZoneGroupState", xml)
    state = decode_entities(inner) if inner is not None else xml

    groups: list[Group] = []
    for chunk in state.split("<ZoneGroup ")[1:]:
        coordinator_id = extract_attribute("Coordinator", chunk)
        if not coordinator_id:
            continue

        coordinator: Device | None = None
        members: list[Device] = []
        for member_chunk in chunk.split("<ZoneGroupMember ")[1:]:
            uuid = extract_attribute("UUID", member_chunk)
            device = known_devices.get(uuid) if uuid else None
            if device is None:
                continue
            if uuid == coordinator_id:
                device = dataclasses.replace(device, is_coordinator=True)
                coordinator = device
            else:
                device = dataclasses.replace(device, is_coordinator=False)
            members.append(device)

        if coordinator is None:
            logger.debug("Dropping group with unresolved coordinator %s", coordinator_id)
            continue
        groups.append(Group(coordinator=coordinator, members=members))

    return groups


class ZoneService:
    """Fetches topology and issues group membership changes."""

    def __init__(self, soap: SoapClient) -> None:
        """Initialize the service.

        Args:
            soap: Shared SOAP client.
        """
        self._soap = soap

    async def get_topology(self, device: Device) -> str:
        """Fetch the raw zone group state from any device.

        Args:
            device: Any reachable device; all of them report the whole
                household topology.

        Returns:
            Raw GetZoneGroupState response body.
        """
        return await self._soap.send(
            device.base_url,
            Service.ZONE_GROUP_TOPOLOGY,
            "GetZoneGroupState",
            instance_id=None,
        )

    async def get_groups(self, device: Device, known_devices: Mapping[str, Device]) -> list[Group]:
        """Fetch and parse the topology in one step."""
        return parse_groups(await self.get_topology(device), known_devices)

    async def join_group(self, device: Device, coordinator: Device) -> None:
        """Make device follow coordinator.

        The call returning does not mean the device joined; re-fetch the
        topology to find out.
        """
        await self._soap.send(
            device.base_url,
            Service.AV_TRANSPORT,
            "SetAVTransportURI",
            [("CurrentURI", f"x-rincon:{coordinator.id}"), ("CurrentURIMetaData", "")],
        )

    async def leave_group(self, device: Device) -> None:
        """Make device the coordinator of its own standalone group."""
        await self._soap.send(
            device.base_url,
            Service.AV_TRANSPORT,
            "BecomeCoordinatorOfStandaloneGroup",
        )
