"""
Release domain objects for pluginrepo.

Records describing what the remote repository publishes and what the local
repository has built from it:
- TagRecord: one release tag with its eligible assets and built packages
- AssetRecord: a downloadable release asset
- PluginPackageRecord: a repackaged per-platform plugin bundle
- ToolRecord: one tool declared in a plugin's manifest

Records own all of their string data. Serialization goes through
to_dict()/from_dict(); sanitizing persisted data is the job of the store.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Platform(Enum):
    """Target platform of an asset or package."""
    WINDOWS = "windows"
    LINUX = "linux"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> 'Platform':
        """Lenient parse; anything unrecognized is UNKNOWN."""
        try:
            return cls(str(value or '').strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass
class AssetRecord:
    """A release asset eligible for repackaging."""
    name: str
    download_url: str
    local_path: str
    platform: Platform = Platform.UNKNOWN
    size: int = 0  # Reported by the API, 0 if unknown

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'download_url': self.download_url,
            'local_path': self.local_path,
            'platform': self.platform.value,
            'size': self.size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AssetRecord':
        size = data.get('size', 0)
        return cls(
            name=str(data.get('name', '')),
            download_url=str(data.get('download_url', '')),
            local_path=str(data.get('local_path', '')),
            platform=Platform.parse(data.get('platform')),
            size=size if isinstance(size, int) and size > 0 else 0,
        )


@dataclass
class ToolRecord:
    """A tool declared in a plugin's ``*_tools.json`` manifest."""
    name: str
    description: str = ""
    parameters: str = "{}"  # JSON schema as text
    is_streaming: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'description': self.description,
            'parameters': self.parameters,
            'is_streaming': self.is_streaming,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ToolRecord':
        parameters = data.get('parameters', '{}')
        if not isinstance(parameters, str):
            parameters = json.dumps(parameters, sort_keys=True)
        return cls(
            name=str(data.get('name', '')),
            description=str(data.get('description', '') or ''),
            parameters=parameters,
            is_streaming=bool(data.get('is_streaming', False)),
        )


@dataclass
class PluginPackageRecord:
    """
    A repackaged plugin bundle produced from one release asset.

    Attributes:
        id: ``{owner}_{plugin_name}``, unique within the owning tag
        local_path: ``repo_root/tag/platform/{plugin}_{tag}_{timestamp}.zip``
    """
    id: str
    name: str
    version: str = ""
    description: str = ""
    author: str = ""
    release_date: str = ""
    tag_name: str = ""
    local_path: str = ""
    platform: Platform = Platform.UNKNOWN
    tools: List[ToolRecord] = field(default_factory=list)

    @property
    def package_name(self) -> str:
        """File name of the bundle."""
        return self.local_path.replace('\\', '/').rsplit('/', 1)[-1]

    def to_dict(self, include_tools: bool = True) -> Dict[str, Any]:
        result = {
            'id': self.id,
            'name': self.name,
            'version': self.version,
            'description': self.description,
            'author': self.author,
            'release_date': self.release_date,
            'tag_name': self.tag_name,
            'local_path': self.local_path,
            'platform': self.platform.value,
        }
        if include_tools:
            result['tools'] = [t.to_dict() for t in self.tools]
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PluginPackageRecord':
        tools = data.get('tools') or []
        return cls(
            id=str(data.get('id', '')),
            name=str(data.get('name', '')),
            version=str(data.get('version', '')),
            description=str(data.get('description', '')),
            author=str(data.get('author', '')),
            release_date=str(data.get('release_date', '')),
            tag_name=str(data.get('tag_name', '')),
            local_path=str(data.get('local_path', '')),
            platform=Platform.parse(data.get('platform')),
            tools=[ToolRecord.from_dict(t) for t in tools if isinstance(t, dict)],
        )


@dataclass
class TagRecord:
    """
    A release tag and everything built from it.

    A record with a non-empty ``plugin_packages`` map is fully processed:
    it is never downloaded or extracted again unless processing is forced.
    """
    tag_name: str
    display_name: str = ""
    published_at: str = ""
    assets: List[AssetRecord] = field(default_factory=list)
    plugin_packages: Dict[str, PluginPackageRecord] = field(default_factory=dict)

    @property
    def is_processed(self) -> bool:
        """True once at least one plugin package was built."""
        return bool(self.plugin_packages)

    def to_dict(self) -> Dict[str, Any]:
        """Persisted / served JSON document shape."""
        return {
            'tag_name': self.tag_name,
            'name': self.display_name,
            'published_at': self.published_at,
            'assets': [a.to_dict() for a in self.assets],
            'plugin_packages': {
                pid: pkg.to_dict(include_tools=False)
                for pid, pkg in self.plugin_packages.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TagRecord':
        assets = data.get('assets')
        packages = data.get('plugin_packages')
        if not isinstance(assets, list):
            assets = []
        if not isinstance(packages, dict):
            packages = {}

        record = cls(
            tag_name=str(data.get('tag_name', '')),
            display_name=str(data.get('name', '')),
            published_at=str(data.get('published_at', '') or ''),
        )
        record.assets = [AssetRecord.from_dict(a) for a in assets if isinstance(a, dict)]
        for key, value in packages.items():
            if not isinstance(value, dict):
                continue
            package = PluginPackageRecord.from_dict({'id': key, **value})
            package.id = str(key)
            record.plugin_packages[package.id] = package
        return record

    def __repr__(self) -> str:
        return (
            f"TagRecord({self.tag_name!r}, assets={len(self.assets)}, "
            f"packages={len(self.plugin_packages)})"
        )


def make_plugin_id(owner: str, plugin_name: str) -> str:
    """Plugin ids follow the ``owner_pluginname`` convention."""
    return f"{owner}_{plugin_name}"
