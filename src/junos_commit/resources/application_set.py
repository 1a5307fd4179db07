"""Set of security applications, referenced by policies."""
from dataclasses import dataclass
from typing import Optional

from ..config_engine.schema import ConfigResource, key, repeated, statement


@dataclass
class ApplicationSet(ConfigResource):
    resource_type = "junos_application_set"

    name: str = key()
    applications: list[str] = repeated("application", ordered=False)
    application_sets: list[str] = repeated("application-set", ordered=False)
    description: Optional[str] = statement("description", quoted=True)

    def config_path(self) -> str:
        return f"applications application-set {self.name}"
