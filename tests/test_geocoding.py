import requests

from services.geocoding import Geocoder, address_variants

from tests.conftest import FakeGeocoderSession, FakeResponse


def test_variants_most_specific_first():
    assert address_variants('Plot 5, Industrial Area, Nairobi, Kenya') == [
        'Plot 5, Industrial Area, Nairobi, Kenya',
        'Plot 5, Industrial Area, Nairobi',
        'Plot 5',
    ]


def test_variants_strip_plus_codes():
    assert address_variants('9G8F+5W Accra, Ghana') == [
        '9G8F+5W Accra, Ghana',
        'Accra, Ghana',
        '9G8F+5W Accra',
    ]


def test_variants_skip_short_first_part_and_duplicates():
    assert address_variants('12, Main  Street') == ['12, Main Street', '12']
    assert address_variants('Nairobi') == ['Nairobi']
    assert address_variants('   ') == []
    assert address_variants(None) == []


def test_lookup_falls_back_and_sleeps_between_requests():
    session = FakeGeocoderSession()
    session.results['Plot 5'] = (-1.3, 36.8)
    sleeps = []
    geocoder = Geocoder(session=session, sleep=sleeps.append, delay_seconds=1.1)

    result = geocoder.lookup('Plot 5, Nairobi, Kenya')
    assert (result.latitude, result.longitude) == (-1.3, 36.8)
    assert session.queries == ['Plot 5, Nairobi, Kenya', 'Plot 5, Nairobi', 'Plot 5']
    assert sleeps == [1.1, 1.1]


def test_lookup_disabled_unless_forced():
    session = FakeGeocoderSession()
    session.results['Kampala'] = (0.3, 32.5)
    geocoder = Geocoder(session=session, enabled=False, sleep=lambda _: None)

    assert geocoder.lookup('Kampala') is None
    assert session.queries == []
    assert geocoder.lookup('Kampala', force=True).latitude == 0.3


class _ErrorSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc

    def get(self, *args, **kwargs):
        if self.exc:
            raise self.exc
        return self.response


def test_search_treats_failures_as_no_result():
    assert Geocoder(session=_ErrorSession(exc=requests.ConnectionError('offline'))).search('x') is None
    assert Geocoder(session=_ErrorSession(FakeResponse([], status_code=503))).search('x') is None
    assert Geocoder(session=_ErrorSession(FakeResponse({'error': 'bad'}))).search('x') is None
    assert Geocoder(session=_ErrorSession(FakeResponse([{'lat': 'nan', 'lon': '1'}]))).search('x') is None
    assert Geocoder(session=_ErrorSession(FakeResponse([{'lat': None}]))).search('x') is None


def test_search_sends_user_agent():
    seen = {}

    class RecordingSession:
        def get(self, url, params=None, headers=None, timeout=None):
            seen.update(url=url, params=params, headers=headers)
            return FakeResponse([{'lat': '1.5', 'lon': '2.5'}])

    geocoder = Geocoder(session=RecordingSession(), user_agent='CBM-Test/1.0')
    result = geocoder.search('Accra')
    assert (result.latitude, result.longitude) == (1.5, 2.5)
    assert seen['headers'] == {'User-Agent': 'CBM-Test/1.0'}
    assert seen['params']['format'] == 'json'
    assert seen['params']['limit'] == 1
