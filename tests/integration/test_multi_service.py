"""
End-to-end generation for a realistic multi-service project file.
"""
import yaml
from fleet.PARSERS.config_parser import ConfigParser
from fleet.MANAGERS.service_orchestrator import generate_or_raise
from fleet.CONVERTERS.to_compose import ComposeConverter
from fleet.CONVERTERS.to_nginx import NginxConfigConverter

PROJECT = """
project: agency
settings:
  auto_domain_suffix: test
services:
  - name: website
    image: nginx:alpine
    port: 80
    folder: website
    runtime: php:8.3
    database: mariadb:11.2
    database_name: site
    mail: mailpit
  - name: frontend
    image: node:20-alpine
    port: 5173
    runtime: node:lts
    search: meilisearch:1.6
    search_api_key: ${MEILI_KEY:-dev-key}
  - name: files
    image: agency/files:2
    storage: minio
    storage_region: eu-west-1
    volumes:
      - uploads:/srv/uploads
"""


def test_full_project(tmp_path):
    config = ConfigParser(context={}).parse_from_string(PROJECT)
    document = generate_or_raise(config.services, config.settings)

    assert list(document.services) == [
        "website", "frontend", "files",
        "mariadb-112", "mailpit", "meilisearch-16", "minio-2024",
        "website-php", "frontend-node", "nginx-proxy",
    ]
    website = document.services["website"]
    assert website.depends_on == ["mariadb-112", "mailpit", "website-php", "nginx-proxy"]
    assert website.environment["DB_DATABASE"] == "site"
    assert website.environment["PHP_FPM_HOST"] == "website-php"
    assert website.ports == []

    frontend = document.services["frontend"]
    assert frontend.environment["MEILISEARCH_KEY"] == "dev-key"
    assert frontend.environment["NODE_HOST"] == "frontend-node"

    files = document.services["files"]
    assert files.environment["AWS_REGION"] == "eu-west-1"
    assert files.ports == []
    assert [r.domain for r in document.proxy_routes] == ["website.test", "frontend.test"]

    assert list(document.volumes) == [
        "uploads", "mariadb-112-data", "mailpit-data", "meilisearch-16-data", "minio-2024-data"]
    assert document.services["website-php"].volumes[0].to_compose() == "../website:/var/www/html"

    out = tmp_path / "docker-compose.yml"
    ComposeConverter(document).write(str(out))
    data = yaml.safe_load(out.read_text())
    assert data["services"]["nginx-proxy"]["image"] == "nginx:alpine"

    nginx = NginxConfigConverter(document).render()
    assert "http://frontend:5173" in nginx
