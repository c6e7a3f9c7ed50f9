# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Converters for generating the reverse-proxy nginx configuration.
"""
import logging
import os

from jinja2 import Template

from ..MODELS.orchestration_document import OrchestrationDocument

logger = logging.getLogger(__name__)

NGINX_TEMPLATE = """# Generated by Fleet - DO NOT EDIT
events {
    worker_connections 1024;
}

http {
    resolver 127.0.0.11 valid=30s;
    client_max_body_size 100M;

    server {
        listen 80 default_server;
        server_name _;

        location /health {
            access_log off;
            return 200 "healthy\\n";
            add_header Content-Type text/plain;
        }

        location / {
            return 404;
        }
    }
{% for route in routes %}
    server {
        listen 80;
        server_name {{ route.domain }};
{% if route.ssl %}
        return 301 https://$host$request_uri;
    }

    server {
        listen 443 ssl;
        http2 on;
        server_name {{ route.domain }};

        ssl_certificate /etc/nginx/ssl/{{ route.domain }}.crt;
        ssl_certificate_key /etc/nginx/ssl/{{ route.domain }}.key;
        ssl_protocols TLSv1.2 TLSv1.3;
{% endif %}

        location / {
            set $upstream http://{{ route.service }}:{{ route.port }};
            proxy_pass $upstream;
            proxy_http_version 1.1;
            proxy_set_header Host $host;
            proxy_set_header X-Real-IP $remote_addr;
            proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
            proxy_set_header X-Forwarded-Proto $scheme;
            proxy_set_header Upgrade $http_upgrade;
            proxy_set_header Connection "upgrade";
        }
    }
{% endfor %}}
"""


class NginxConfigConverter:
    """
    Converts the proxy routes of a document into an nginx.conf for the
    reverse-proxy sidecar.
    """

    def __init__(self, document: OrchestrationDocument):
        """
        :param document: The generated document.
        """
        self.document = document
        self.template = Template(NGINX_TEMPLATE, keep_trailing_newline=True)

    def render(self) -> str:
        return self.template.render(routes=self.document.proxy_routes)

    def write(self, output_path: str) -> str:
        """
        Writes the configuration.

        :param output_path: Destination, usually the proxy's configured path.
        :return: The path written.
        """
        parent = os.path.dirname(output_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(output_path, "w") as f:
            f.write(self.render())
        logger.info("Nginx configuration written to %s", output_path)
        return output_path
