import unittest
from unittest.mock import MagicMock, patch

import requests

from placeshare.errors import GeocodeError
from placeshare.geocoding import GOOGLE_GEOCODE_URL, GoogleGeocoder, StaticGeocoder


def _response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class GoogleGeocoderTests(unittest.TestCase):
    @patch("placeshare.geocoding.requests.get")
    def test_returns_first_result_location(self, mock_get):
        mock_get.return_value = _response(
            {
                "status": "OK",
                "results": [
                    {"geometry": {"location": {"lat": 40.7484, "lng": -73.9857}}}
                ],
            }
        )
        coords = GoogleGeocoder(api_key="key").geocode("20 W 34th St, New York, NY")

        self.assertEqual(coords, {"lat": 40.7484, "lng": -73.9857})
        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], GOOGLE_GEOCODE_URL)
        self.assertEqual(kwargs["params"]["address"], "20 W 34th St, New York, NY")
        self.assertEqual(kwargs["params"]["key"], "key")

    @patch("placeshare.geocoding.requests.get")
    def test_zero_results_is_geocode_error(self, mock_get):
        mock_get.return_value = _response({"status": "ZERO_RESULTS", "results": []})
        with self.assertRaises(GeocodeError) as ctx:
            GoogleGeocoder(api_key="key").geocode("nowhere")
        self.assertEqual(ctx.exception.status_code, 422)

    @patch("placeshare.geocoding.requests.get")
    def test_transport_failure_is_geocode_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("offline")
        with self.assertRaises(GeocodeError):
            GoogleGeocoder(api_key="key").geocode("anywhere")


class StaticGeocoderTests(unittest.TestCase):
    def test_known_and_default(self):
        geocoder = StaticGeocoder(known={"home": {"lat": 1.0, "lng": 2.0}})
        self.assertEqual(geocoder.geocode("home"), {"lat": 1.0, "lng": 2.0})
        self.assertIn("lat", geocoder.geocode("elsewhere"))

    def test_without_default_unknown_fails(self):
        with self.assertRaises(GeocodeError):
            StaticGeocoder(default=None).geocode("elsewhere")


if __name__ == "__main__":
    unittest.main()
