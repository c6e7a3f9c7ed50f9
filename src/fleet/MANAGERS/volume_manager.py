"""
Volume management: the named volumes section of the document.
"""
import re
from typing import Dict, Iterable, List

from ..errors import ValidationError
from ..MODELS.service_spec import VolumeMount, VolumeType
from ..MODELS.orchestration_document import ContainerEntry, VolumeDefinition

VOLUME_NAME = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_.-]*$")


class VolumeManager:
    """
    Collects named volumes referenced by entries. Bind mounts are passed
    through untouched and never declared.
    """
    def __init__(self, driver: str = "local"):
        self.driver = driver

    def validate(self, mounts: Iterable[VolumeMount], service: str) -> List[ValidationError]:
        errors = []
        for mount in mounts:
            if not mount.target:
                errors.append(ValidationError(f"volume '{mount.source}' has no target", value=mount.source,
                                              service=service))
            if mount.type == VolumeType.VOLUME and not VOLUME_NAME.match(mount.source):
                errors.append(ValidationError(f"invalid volume name '{mount.source}'", value=mount.source,
                                              service=service))
        return errors

    def collect(self, entries: Dict[str, ContainerEntry]) -> Dict[str, VolumeDefinition]:
        """
        Returns exactly the named volumes referenced by ``entries``, in
        first-reference order.
        """
        volumes: Dict[str, VolumeDefinition] = {}
        for entry in entries.values():
            for mount in entry.volumes:
                if mount.type == VolumeType.VOLUME and mount.source not in volumes:
                    volumes[mount.source] = VolumeDefinition(driver=self.driver)
        return volumes
