import logging

import requests

from app.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class GeocodedAddress:
    """First candidate returned by the geocoding service. Immutable."""

    __slots__ = ('lat', 'lon', 'display_name', 'address')

    def __init__(self, lat, lon, display_name='', address=None):
        object.__setattr__(self, 'lat', float(lat))
        object.__setattr__(self, 'lon', float(lon))
        object.__setattr__(self, 'display_name', display_name or '')
        object.__setattr__(self, 'address', dict(address or {}))

    def __setattr__(self, name, value):
        raise AttributeError('GeocodedAddress is immutable')

    @classmethod
    def from_dict(cls, data):
        if not data:
            return None
        return cls(data['lat'], data['lon'], data.get('display_name'), data.get('address'))

    def to_dict(self):
        return {
            'lat': self.lat,
            'lon': self.lon,
            'display_name': self.display_name,
            'address': dict(self.address),
        }

    def short_label(self):
        """'12 Main St, Charlotte, NC 28216' built from the structured parts."""
        parts = self.address
        street = ' '.join(p for p in (parts.get('house_number'), parts.get('road')) if p)
        region = ' '.join(p for p in (parts.get('state'), parts.get('postcode')) if p)
        return ', '.join(p for p in (street, parts.get('city'), region) if p) or self.display_name

    def __repr__(self):
        return f"GeocodedAddress({self.lat}, {self.lon}, '{self.display_name}')"


class NominatimGeocoder:
    """Resolves free-text addresses through a Nominatim-compatible search API."""

    def __init__(self, url, user_agent, timeout=10.0):
        self.url = url
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({'User-Agent': user_agent, 'Accept': 'application/json'})

    def geocode(self, query):
        """
        Returns the first candidate for `query`, or None when nothing matches.

        Raises ExternalServiceError when the service cannot be reached or
        answers with an error status.
        """
        params = {'format': 'json', 'q': query, 'addressdetails': 1, 'limit': 1}
        try:
            response = self.session.get(self.url, params=params, timeout=self.timeout)
            response.raise_for_status()
            candidates = response.json()
        except requests.exceptions.RequestException as e:
            logger.warning('Geocoding failed for %r: %s', query, e)
            raise ExternalServiceError('The address lookup service is unavailable.') from e
        except ValueError as e:
            logger.warning('Geocoder returned invalid JSON for %r', query)
            raise ExternalServiceError('The address lookup service is unavailable.') from e

        if not candidates:
            logger.info('No geocoding match for %r', query)
            return None
        first = candidates[0]
        return GeocodedAddress(
            lat=first['lat'],
            lon=first['lon'],
            display_name=first.get('display_name', ''),
            address=first.get('address') or {},
        )

    def close(self):
        self.session.close()
