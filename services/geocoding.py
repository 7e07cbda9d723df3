# services/geocoding.py
"""
Address geocoding against the Nominatim search API.

Lookups try progressively looser variants of an address and never raise:
a failed lookup returns ``None`` so the write that triggered it proceeds.
"""

import logging
import math
import re
import time
from dataclasses import dataclass
from typing import List, Optional

import requests

logger = logging.getLogger(__name__)

PLUS_CODE_PATTERN = re.compile(r'[A-Z0-9]{2,}\+[A-Z0-9]{2,}', re.IGNORECASE)
WHITESPACE_PATTERN = re.compile(r'\s+')


@dataclass
class Coordinates:
    latitude: float
    longitude: float


def address_variants(address: Optional[str]) -> List[str]:
    """
    Candidate query strings, most specific first:
    the address itself, the address without Plus Codes, every comma part
    except the last one, and the first part alone.
    """
    if not address or not address.strip():
        return []

    candidates = [address]

    without_plus_code = PLUS_CODE_PATTERN.sub('', address).strip()
    if without_plus_code and without_plus_code != address:
        candidates.append(without_plus_code)

    parts = [part.strip() for part in address.split(',') if part.strip()]
    if len(parts) >= 2:
        leading = ', '.join(parts[:-1])
        if leading != address and leading != without_plus_code:
            candidates.append(leading)
        first = parts[0]
        if len(first) > 2 and first != address:
            candidates.append(first)

    variants = []
    for candidate in candidates:
        collapsed = WHITESPACE_PATTERN.sub(' ', candidate).strip()
        if collapsed and collapsed not in variants:
            variants.append(collapsed)
    return variants


class Geocoder:
    """Nominatim client with variant fallback and a fixed inter-request delay"""

    def __init__(self,
                 base_url: str = 'https://nominatim.openstreetmap.org/search',
                 user_agent: str = 'CBM-Backend/1.0',
                 delay_seconds: float = 1.1,
                 timeout: float = 10,
                 enabled: bool = True,
                 session: Optional[requests.Session] = None,
                 sleep=time.sleep):
        self.base_url = base_url
        self.user_agent = user_agent
        self.delay_seconds = delay_seconds
        self.timeout = timeout
        self.enabled = enabled
        self.session = session or requests.Session()
        self._sleep = sleep

    def init_app(self, app):
        self.base_url = app.config['GEOCODER_URL']
        self.user_agent = app.config['GEOCODER_USER_AGENT']
        self.delay_seconds = app.config['GEOCODER_DELAY_SECONDS']
        self.timeout = app.config['GEOCODER_TIMEOUT']
        self.enabled = app.config['GEOCODING_ENABLED']
        app.extensions['geocoder'] = self

    def search(self, query: str) -> Optional[Coordinates]:
        """Single Nominatim query; ``None`` when nothing usable comes back"""
        try:
            response = self.session.get(
                self.base_url,
                params={'format': 'json', 'q': query, 'limit': 1, 'addressdetails': 1},
                headers={'User-Agent': self.user_agent},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning(f"Geocoding request failed for '{query}': {e}")
            return None

        if not response.ok:
            logger.warning(f"Geocoder returned HTTP {response.status_code} for '{query}'")
            return None

        try:
            results = response.json()
        except ValueError:
            logger.warning(f"Geocoder returned a non-JSON body for '{query}'")
            return None

        if not isinstance(results, list) or not results:
            return None

        try:
            latitude = float(results[0].get('lat'))
            longitude = float(results[0].get('lon'))
        except (TypeError, ValueError):
            return None
        if not (math.isfinite(latitude) and math.isfinite(longitude)):
            return None
        return Coordinates(latitude=latitude, longitude=longitude)

    def lookup(self, address: Optional[str], force: bool = False) -> Optional[Coordinates]:
        """
        Geocode an address, falling back through looser variants.
        ``force`` bypasses the feature toggle for operator-triggered lookups.
        """
        if not (self.enabled or force):
            return None

        for index, variant in enumerate(address_variants(address)):
            if index > 0 and self.delay_seconds:
                self._sleep(self.delay_seconds)
            result = self.search(variant)
            if result is not None:
                used = 'original' if index == 0 else f"variant {index + 1}"
                logger.info(f"Geocoded using {used}: '{variant}' -> [{result.latitude}, {result.longitude}]")
                return result

        if address:
            logger.warning(f"Geocoding failed for address '{address}'")
        return None


geocoder = Geocoder()
