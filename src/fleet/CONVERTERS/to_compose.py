"""
Converters for serializing an orchestration document to docker-compose YAML.
"""
import logging
import os

import yaml

from ..MODELS.orchestration_document import OrchestrationDocument

logger = logging.getLogger(__name__)

HEADER = "# Generated by Fleet - DO NOT EDIT\n"


class _ComposeDumper(yaml.SafeDumper):
    """
    Indents block sequences under their parent key, as compose files usually are.
    """
    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)


class ComposeConverter:
    """
    Converts an orchestration document into a docker-compose file.
    """
    def __init__(self, document: OrchestrationDocument):
        """
        :param document: The generated document.
        """
        self.document = document

    def to_yaml(self) -> str:
        """
        Renders the document. Identical documents render to identical text.
        """
        body = yaml.dump(
            self.document.to_compose(),
            Dumper=_ComposeDumper,
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
        )
        return HEADER + body

    def write(self, output_path: str = "docker-compose.yml") -> str:
        """
        Writes the compose file, creating parent directories as needed.

        :param output_path: Destination path.
        :return: The path written.
        """
        parent = os.path.dirname(output_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(output_path, "w") as f:
            f.write(self.to_yaml())
        logger.info("Compose file written to %s", output_path)
        return output_path
