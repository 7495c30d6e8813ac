"""Icon resolvers: map a service name to a display icon key."""

from typing import Mapping, Optional


class IconResolver:
    """Collaborator contract used by URI import and the migration adapter.

    The default implementation knows no icons and always returns None.
    """

    def find_service_key_by_name(self, name: str) -> Optional[str]:
        return None


class MappingIconResolver(IconResolver):
    """Look up icon keys in a plain ``{service_key: icon_key}`` mapping.

    Names are normalized before lookup: lower-cased, spaces and dots removed,
    so "Google Mail" and "google.mail" both hit the key "googlemail".
    """

    def __init__(self, icons: Mapping[str, str], default: Optional[str] = None) -> None:
        self._icons = {self.normalize(key): value for key, value in icons.items()}
        self._default = default

    @staticmethod
    def normalize(name: str) -> str:
        return name.strip().lower().replace(" ", "").replace(".", "")

    def find_service_key_by_name(self, name: str) -> Optional[str]:
        if not name:
            return self._default
        return self._icons.get(self.normalize(name), self._default)
