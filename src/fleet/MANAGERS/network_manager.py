"""
Network management: the single project network and its address block.
"""
import ipaddress
from typing import Dict, List

from ..errors import ValidationError
from ..MODELS.orchestration_config import GlobalSettings
from ..MODELS.orchestration_document import NetworkDefinition


class NetworkManager:
    """
    Validates and defines the one network every entry joins.
    """
    def __init__(self, settings: GlobalSettings):
        """
        :param settings: Global settings carrying the network name, driver,
            subnet and the address blocks reserved by sibling infrastructure.
        """
        self.settings = settings

    def validate(self) -> List[ValidationError]:
        """
        Checks the network name, that the subnet parses, and that it does not
        overlap any reserved block.

        :return: Every problem found.
        """
        errors = []
        if not self.settings.network_name:
            errors.append(ValidationError("network name must not be empty", value=""))

        try:
            subnet = ipaddress.ip_network(self.settings.subnet, strict=True)
        except ValueError as e:
            errors.append(ValidationError(f"invalid subnet '{self.settings.subnet}': {e}",
                                          value=self.settings.subnet))
            return errors

        for block in self.settings.reserved_subnets:
            try:
                reserved = ipaddress.ip_network(block, strict=False)
            except ValueError as e:
                errors.append(ValidationError(f"invalid reserved subnet '{block}': {e}", value=block))
                continue
            if reserved.version == subnet.version and subnet.overlaps(reserved):
                errors.append(ValidationError(
                    f"subnet {subnet} overlaps reserved block {reserved}", value=self.settings.subnet))
        return errors

    def networks(self) -> Dict[str, NetworkDefinition]:
        return {
            self.settings.network_name: NetworkDefinition(
                driver=self.settings.network_driver,
                subnet=self.settings.subnet,
            )
        }
