"""
Application registry - the fixed set of dApp packages whose activity is ranked.

Built once at startup and passed explicitly to every component that needs
it. Several package ids can share one display name (e.g. two Cetus AMM
deployments); ranking collapses them into one logical application.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from pathlib import Path

from dapp_ranker.infrastructure.observability.logging import get_logger
from dapp_ranker.models.domain.ranking_domain import AppDescriptor

logger = get_logger(__name__)


class RegistryError(ValueError):
    """Raised when a registry definition is malformed."""


# (package id, display name, category)
DEFAULT_APPLICATIONS: tuple[tuple[str, str, str], ...] = (
    ("0xda12d621169da92ed8af5f6b332b7bec64c840bb49bb3d4206d6739cd76bad14", "FanTV AI", "AI"),
    ("0x2cdcc3b1306a49fcd5b8ccded57116ad86ab37a93ba9d91fa1ce06a8d22a21e9", "6degrees", "Marketing"),
    ("0xa2f06318d797e3a2ba734069165e164870677f705d95d8a18b6d9aabbd588709", "Aftermath AMM", "DEX"),
    ("0xada81624f2be6abd31f2433dac2642a03414cdb20d494314a4d3d889281fb5e", "Pebble", "GameFi"),
    ("0x04e20ddf36af412a4096f9014f4a565af9e812db9a05cc40254846cf6ed0ad91", "Pyth", "Infra"),
    ("0x9c12f3aa14a449a0a23c066589e269086f021a98939f21158cfacb16d19787c3", "Momentum", "DEX"),
    ("0x7ea6e27ad7af6f3b8671d59df1aaebd7c03dddab893e52a714227b2f4fe91519", "7K Aggregator", "Aggregator"),
    ("0xb908f3c6fea6865d32e2048c520cdfe3b5c5bbcebb658117c41bad70f52b7ccc", "Claynosaurz", "NFT"),
    ("0x21f544aff826a48e6bd5364498454d8487c4a90f84995604cd5c947c06b596c3", "Suilend", "Lending"),
    ("0x9df4666296ee324a6f11e9f664e35e7fd6b6e8c9e9058ce6ee9ad5c5343c2f87", "Ika", "Infra"),
    ("0x5306f64e312b581766351c07af79c72fcb1cd25147157fdc2f8ad76de9a3fb6a", "Portal", "Bridge"),
    ("0x2476333f61ab625ae25205b6726048295fe8b356d26ca841ddf93c69bbd616c8", "Turbos", "DEX"),
    ("0x6f5e582ede61fe5395b50c4a449ec11479a54d7ff8e0158247adfda60d98970b", "Cetus AMM", "DEX"),
    ("0x3864c7c59a4889fec05d1aae4bc9dba5a0e0940594b424fbed44cb3f6ac4c032", "Cetus AMM", "DEX"),
    ("0x51966dc1d9d3e6d85aed55aa87eb9e78e928b4e74b4844a15ef7e3dfb5af3bae", "Cetus Aggregator", "Aggregator"),
    ("0x7cdd26c4aa40c990d5ca780e0919b2de796be9bb41fba461d133bfacb0f677bc", "Cetus Aggregator", "Aggregator"),
    ("0x2c68443db9e8c813b194010c11040a3ce59f47e4eb97a2ec805371505dad7459", "Wave", "Infra"),
    ("0x6d264cc3d4b7b81a7e3e47403b335d1d933ceb03dacc4328214f10bf8937a239", "NAVI Lending", "Lending"),
    ("0x8d196820b321bb3c56863b3eb0dd90a49f9eb52e3473373efcebf4388bf04416", "SpringSui", "Liquid Staking"),
    ("0x5a6df33a03a69959065b5e87aecac72d0afff893a1923833a77dcfb0d2f42980", "Metastable", "CDP"),
)


class ApplicationRegistry:
    """Read-only mapping of package id -> AppDescriptor, in registration order."""

    def __init__(self, descriptors: Iterable[AppDescriptor]):
        self._by_origin: dict[str, AppDescriptor] = {}
        self._by_name: dict[str, list[AppDescriptor]] = {}

        for descriptor in descriptors:
            if not descriptor.origin_id or not descriptor.display_name:
                raise RegistryError(f"Incomplete application descriptor: {descriptor!r}")
            if descriptor.origin_id in self._by_origin:
                raise RegistryError(f"Duplicate package id in registry: {descriptor.origin_id}")
            self._by_origin[descriptor.origin_id] = descriptor
            self._by_name.setdefault(descriptor.display_name, []).append(descriptor)

    @classmethod
    def from_tuples(cls, rows: Iterable[tuple[str, str, str]]) -> ApplicationRegistry:
        return cls(AppDescriptor(origin_id, name, category) for origin_id, name, category in rows)

    @classmethod
    def default(cls) -> ApplicationRegistry:
        return cls.from_tuples(DEFAULT_APPLICATIONS)

    @classmethod
    def from_json_file(cls, path: str | Path) -> ApplicationRegistry:
        """
        Load a registry from a JSON list of
        {"package_id": ..., "name": ..., "type": ...} objects.
        """
        try:
            payload = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise RegistryError(f"Failed to read registry file {path}: {e}") from e

        if not isinstance(payload, list):
            raise RegistryError(f"Registry file {path} must contain a JSON list")

        try:
            descriptors = [
                AppDescriptor(
                    origin_id=str(item["package_id"]),
                    display_name=str(item["name"]),
                    category=str(item.get("type", "Unknown")),
                )
                for item in payload
            ]
        except (KeyError, TypeError, AttributeError) as e:
            raise RegistryError(f"Malformed registry entry in {path}: {e}") from e

        registry = cls(descriptors)
        logger.info("Loaded application registry", path=str(path), applications=len(registry))
        return registry

    def get(self, origin_id: str) -> AppDescriptor | None:
        return self._by_origin.get(origin_id)

    def representative(self, display_name: str) -> AppDescriptor | None:
        """First-registered descriptor for a display name."""
        group = self._by_name.get(display_name)
        return group[0] if group else None

    @property
    def origin_ids(self) -> list[str]:
        return list(self._by_origin)

    def __contains__(self, origin_id: object) -> bool:
        return origin_id in self._by_origin

    def __iter__(self) -> Iterator[AppDescriptor]:
        return iter(self._by_origin.values())

    def __len__(self) -> int:
        return len(self._by_origin)
