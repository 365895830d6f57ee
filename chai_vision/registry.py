"""
Channel / brand registry used to validate and canonicalize sales rows
"""
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

DEFAULT_CHANNELS = [
    'Amazon',
    'TikTok',
    'DTC-Shopify',
    'Retail',
    'CA International',
    'UK International',
    'Wholesale',
    'Omnichannel',
]

# Backend / upload spelling -> dashboard channel name
DEFAULT_CHANNEL_ALIASES = {
    'shopify': 'DTC-Shopify',
    'retailsale': 'Retail',
    'retail sale': 'Retail',
    'amazon seller central': 'Amazon',
    'amazon vendor central': 'Amazon',
    'tiktok shop': 'TikTok',
}

DEFAULT_BRANDS = ['LifePro', 'PetCove', 'Joyberri', 'Oaktiv', 'Loft & Ivy', 'New Brands']

ALL_BRANDS_LABELS = ('All Brands', 'All Brands (Company Total)')
ALL_CHANNELS_LABELS = ('All Channels',)

_NON_ALNUM = re.compile(r'[^a-z0-9]+')


def normalize_key(value) -> str:
    """Comparison key: lower case, '&' spelled 'and', punctuation and spaces removed"""
    text = str(value if value is not None else '').strip().lower().replace('&', 'and')
    return _NON_ALNUM.sub('', text)


@dataclass
class Registry:
    channels: List[str] = field(default_factory=lambda: list(DEFAULT_CHANNELS))
    channel_aliases: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_CHANNEL_ALIASES))
    brands: List[str] = field(default_factory=lambda: list(DEFAULT_BRANDS))
    strict_brands: bool = False

    def __post_init__(self):
        self._channel_lookup = {normalize_key(c): c for c in self.channels}
        for alias, target in self.channel_aliases.items():
            self._channel_lookup.setdefault(normalize_key(alias), target)
        self._brand_lookup = {normalize_key(b): b for b in self.brands}

    @classmethod
    def from_config(cls, config: Dict) -> 'Registry':
        registry_cfg = config.get('registry', {}) or {}
        return cls(
            channels=registry_cfg.get('channels') or list(DEFAULT_CHANNELS),
            channel_aliases=registry_cfg.get('channel_aliases') or dict(DEFAULT_CHANNEL_ALIASES),
            brands=registry_cfg.get('brands') or list(DEFAULT_BRANDS),
            strict_brands=bool(registry_cfg.get('strict_brands', False)),
        )

    def canonical_channel(self, name) -> Optional[str]:
        """Dashboard channel name for a raw spelling, or None if unknown"""
        return self._channel_lookup.get(normalize_key(name))

    def canonical_brand(self, name) -> Optional[str]:
        """
        Known brand spelling for a raw name. Unknown brands pass through
        stripped unless the registry is strict.
        """
        text = str(name).strip()
        known = self._brand_lookup.get(normalize_key(text))
        if known:
            return known
        return None if self.strict_brands else text

    @staticmethod
    def is_all_brands(selection: Optional[str]) -> bool:
        return selection is None or selection in ALL_BRANDS_LABELS

    @staticmethod
    def is_all_channels(selection: Optional[str]) -> bool:
        return selection is None or selection in ALL_CHANNELS_LABELS
