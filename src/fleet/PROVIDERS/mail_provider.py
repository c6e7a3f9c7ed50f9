"""
Mail capture provider: one Mailpit container for the whole project.
"""
from typing import Dict

from ..MODELS.service_spec import ResourceKind, ResourceRequest, ServiceSpec
from ..MODELS.orchestration_document import SharedResourceEntry
from .base import ResourceProvider

SMTP_PORT = 1025
UI_PORT = 8025


class MailProvider(ResourceProvider):
    """
    Mailpit is a singleton: every request, whatever its version, resolves to
    the single ``mailpit`` entry.
    """
    kind = ResourceKind.MAIL
    singleton = True
    override_fields = ("username", "password", "from_address", "from_name")

    def entry_settings(self, request: ResourceRequest, consumer: ServiceSpec) -> Dict[str, str]:
        return {
            "username": request.override("username"),
            "password": request.override("password"),
        }

    def configure(self, name: str, subtype: str, settings: Dict[str, str], consumer: ServiceSpec) -> dict:
        environment = {
            "MP_DATA_FILE": "/data/mailpit.db",
            "MP_SMTP_AUTH_ACCEPT_ANY": "1",
            "MP_SMTP_AUTH_ALLOW_INSECURE": "1",
        }
        if settings["username"] and settings["password"]:
            environment["MP_SMTP_AUTH"] = f"{settings['username']}:{settings['password']}"
        environment["MP_MAX_MESSAGES"] = "5000"
        environment["MP_MESSAGE_LIMIT"] = "10"
        environment["MP_DATABASE"] = "/data/mailpit.db"
        environment["MP_WEBROOT"] = "/"
        return {
            "environment": environment,
            "volumes": [self.data_volume(name, "/data")],
            "health_check": self.health_check("CMD", "/mailpit", "healthcheck"),
        }

    def environment_for(self, entry: SharedResourceEntry, request: ResourceRequest, consumer: ServiceSpec) -> Dict[str, str]:
        host = entry.name
        settings = self.entry_settings(request, consumer)
        env = {
            "SMTP_HOST": host,
            "SMTP_PORT": str(SMTP_PORT),
            "MAIL_HOST": host,
            "MAIL_PORT": str(SMTP_PORT),
            "MAIL_DRIVER": "smtp",
            "MAIL_MAILER": "smtp",
        }
        if settings["username"] and settings["password"]:
            env["SMTP_USERNAME"] = settings["username"]
            env["SMTP_PASSWORD"] = settings["password"]
            env["MAIL_USERNAME"] = settings["username"]
            env["MAIL_PASSWORD"] = settings["password"]
        env["MAIL_ENCRYPTION"] = ""
        env["SMTP_SECURE"] = "false"
        env["MAIL_FROM_ADDRESS"] = request.override("from_address", "noreply@example.com")
        env["MAIL_FROM_NAME"] = request.override("from_name", "Fleet App")
        env["MAILPIT_UI_URL"] = f"http://{host}:{UI_PORT}"
        return env
