"""Base interface for services embedded in the VPN host's cloud-config."""

from __future__ import annotations

from abc import ABC
from collections.abc import Mapping
from typing import Any

from jinja2 import StrictUndefined, Template, TemplateError

from dovpn.lib.errors import ConfigRenderError


class ServiceDescriptor(ABC):
    """One workload contributing a fragment to the machine user-data.

    Subclasses set ``name`` and ``template``. The template is a jinja2
    source producing a YAML mapping of cloud-config keys (``write_files``,
    ``runcmd`` and so on).
    """

    name: str = ""
    template: str = ""

    def render(self, context: Mapping[str, Any]) -> str:
        """Render this service's cloud-config fragment.

        Args:
            context: Template variables (authorized key, image names, ...)

        Returns:
            YAML text of the fragment

        Raises:
            ConfigRenderError: If the template is malformed or references an
                unknown variable
        """
        try:
            return Template(self.template, undefined=StrictUndefined).render(**context)
        except TemplateError as e:
            raise ConfigRenderError(f"user-data ({self.name})", str(e)) from e
