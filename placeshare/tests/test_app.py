import io
import shutil
import tempfile
import unittest

from fastapi.testclient import TestClient
from PIL import Image as PIL_Image

from placeshare.app import create_app
from placeshare.config import Settings
from placeshare.db import InMemoryDbClient
from placeshare.dependencies import Backends
from placeshare.geocoding import StaticGeocoder
from placeshare.storage import InMemoryStorageClient, LocalStorageClient

EMPIRE_ADDRESS = "20 W 34th St, New York, NY"
EMPIRE_COORDS = {"lat": 40.7484, "lng": -73.9857}


def png_bytes() -> bytes:
    buf = io.BytesIO()
    PIL_Image.new("RGB", (4, 4), "red").save(buf, format="PNG")
    return buf.getvalue()


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.storage = InMemoryStorageClient()
        backends = Backends(
            db=self.db,
            storage=self.storage,
            geocoder=StaticGeocoder(default=None, known={EMPIRE_ADDRESS: EMPIRE_COORDS}),
        )
        settings = Settings(use_in_memory_backends=True, jwt_secret="test-secret")
        self.app = create_app(settings=settings, backends=backends)
        self.client = TestClient(self.app)

    def _signup(self, name="Ada", email="ada@example.com", password="secret123"):
        response = self.client.post(
            "/api/users/signup",
            data={"name": name, "email": email, "password": password},
            files={"image": ("avatar.png", png_bytes(), "image/png")},
        )
        self.assertEqual(response.status_code, 201, response.text)
        payload = response.json()
        return payload["userId"], {"Authorization": f"Bearer {payload['token']}"}

    def _create_place(self, headers, title="Empire State Building"):
        return self.client.post(
            "/api/places",
            data={
                "title": title,
                "description": "One of the most famous sky scrapers in the world!",
                "address": EMPIRE_ADDRESS,
            },
            files={"image": ("empire.png", png_bytes(), "image/png")},
            headers=headers,
        )

    def test_signup_login_and_list_users(self):
        user_id, _ = self._signup()

        login = self.client.post(
            "/api/users/login",
            json={"email": "ADA@example.com", "password": "secret123"},
        )
        self.assertEqual(login.status_code, 200)
        self.assertEqual(login.json()["userId"], user_id)
        self.assertTrue(login.json()["token"])

        users = self.client.get("/api/users").json()["users"]
        self.assertEqual(len(users), 1)
        self.assertEqual(users[0]["id"], user_id)
        self.assertNotIn("password_hash", users[0])
        self.assertNotIn("password", users[0])

    def test_signup_rejects_existing_email(self):
        self._signup()
        response = self.client.post(
            "/api/users/signup",
            data={"name": "Ada", "email": "ada@example.com", "password": "secret123"},
            files={"image": ("avatar.png", png_bytes(), "image/png")},
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(
            response.json()["message"], "User exists already, please login instead."
        )
        # Only the first avatar is kept.
        self.assertEqual(len(self.storage.stored_objects), 1)

    def test_login_with_wrong_password(self):
        self._signup()
        response = self.client.post(
            "/api/users/login", json={"email": "ada@example.com", "password": "nope!!"}
        )
        self.assertEqual(response.status_code, 403)

    def test_create_place_scenario(self):
        user_id, headers = self._signup()
        response = self._create_place(headers)

        self.assertEqual(response.status_code, 201, response.text)
        place = response.json()["place"]
        self.assertEqual(place["creator"], user_id)
        self.assertEqual(place["location"], EMPIRE_COORDS)
        self.assertTrue(self.storage.exists(place["image"]))

        fetched = self.client.get(f"/api/places/{place['id']}")
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.json()["place"], place)

        listed = self.client.get(f"/api/places/user/{user_id}")
        self.assertEqual(listed.status_code, 200)
        self.assertEqual([p["id"] for p in listed.json()["places"]], [place["id"]])

    def test_create_place_requires_token(self):
        response = self.client.post(
            "/api/places",
            data={"title": "t", "description": "desc long", "address": EMPIRE_ADDRESS},
            files={"image": ("empire.png", png_bytes(), "image/png")},
        )
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Authentication failed!")

        bad = self.client.post(
            "/api/places",
            data={"title": "t", "description": "desc long", "address": EMPIRE_ADDRESS},
            files={"image": ("empire.png", png_bytes(), "image/png")},
            headers={"Authorization": "Bearer not-a-token"},
        )
        self.assertEqual(bad.status_code, 401)

    def test_create_place_with_invalid_input_discards_upload(self):
        _, headers = self._signup()
        response = self.client.post(
            "/api/places",
            data={"title": "", "description": "x", "address": EMPIRE_ADDRESS},
            files={"image": ("empire.png", png_bytes(), "image/png")},
            headers=headers,
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(
            response.json()["message"], "Invalid inputs passed, please check your data."
        )
        # Only the avatar from sign up remains.
        self.assertEqual(len(self.storage.stored_objects), 1)

    def test_create_place_with_unknown_address(self):
        _, headers = self._signup()
        response = self.client.post(
            "/api/places",
            data={"title": "Somewhere", "description": "Nowhere to be found", "address": "??"},
            files={"image": ("x.png", png_bytes(), "image/png")},
            headers=headers,
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(
            response.json()["message"],
            "Could not find location for the specified address.",
        )

    def test_create_place_rejects_non_image_upload(self):
        _, headers = self._signup()
        response = self.client.post(
            "/api/places",
            data={
                "title": "Empire",
                "description": "Famous sky scraper",
                "address": EMPIRE_ADDRESS,
            },
            files={"image": ("notes.txt", b"plain text", "text/plain")},
            headers=headers,
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(len(self.db.places), 0)

    def test_update_with_invalid_input(self):
        _, headers = self._signup()
        place = self._create_place(headers).json()["place"]

        response = self.client.patch(
            f"/api/places/{place['id']}",
            json={"title": "Empire", "description": "abc"},
            headers=headers,
        )
        self.assertEqual(response.status_code, 422)
        current = self.client.get(f"/api/places/{place['id']}").json()["place"]
        self.assertEqual(current, place)

        missing = self.client.patch(
            "/api/places/missing",
            json={"title": "", "description": "Long enough"},
            headers=headers,
        )
        self.assertEqual(missing.status_code, 422)
        self.assertEqual(
            missing.json()["message"], "Invalid inputs passed, please check your data."
        )

    def test_signup_rejects_invalid_fields(self):
        cases = [
            {"name": "Ada", "email": "not-an-email", "password": "secret123"},
            {"name": "Ada", "email": "ada@example.com", "password": "short"},
            {"name": "   ", "email": "ada@example.com", "password": "secret123"},
        ]
        for data in cases:
            with self.subTest(data=data):
                response = self.client.post(
                    "/api/users/signup",
                    data=data,
                    files={"image": ("avatar.png", png_bytes(), "image/png")},
                )
                self.assertEqual(response.status_code, 422)
        self.assertEqual(self.db.users, {})
        self.assertEqual(self.storage.stored_objects, {})

    def test_create_place_without_image(self):
        user_id, headers = self._signup()
        response = self.client.post(
            "/api/places",
            data={
                "title": "Empire State Building",
                "description": "One of the most famous sky scrapers in the world!",
                "address": EMPIRE_ADDRESS,
            },
            headers=headers,
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["message"], "An image is required.")
        self.assertEqual(self.db.get_user(user_id).places, [])

    def test_update_by_other_user_is_unauthorized(self):
        _, owner_headers = self._signup()
        _, other_headers = self._signup("Bob", "bob@example.com")
        place = self._create_place(owner_headers).json()["place"]

        response = self.client.patch(
            f"/api/places/{place['id']}",
            json={"title": "Hijacked", "description": "Not yours anymore"},
            headers=other_headers,
        )
        self.assertEqual(response.status_code, 401)
        current = self.client.get(f"/api/places/{place['id']}").json()["place"]
        self.assertEqual(current["title"], "Empire State Building")

    def test_update_ignores_fields_other_than_title_and_description(self):
        _, headers = self._signup()
        _, other_headers = self._signup("Bob", "bob@example.com")
        place = self._create_place(headers).json()["place"]

        response = self.client.patch(
            f"/api/places/{place['id']}",
            json={
                "title": "Empire",
                "description": "Updated description",
                "address": "POISONED",
                "location": {"lat": 0, "lng": 0},
                "image": "uploads/images/poisoned.png",
                "creator": "someone-else",
            },
            headers=headers,
        )
        self.assertEqual(response.status_code, 200, response.text)

        current = self.client.get(f"/api/places/{place['id']}").json()["place"]
        self.assertEqual(current["title"], "Empire")
        self.assertEqual(current["description"], "Updated description")
        for key in ("address", "location", "image", "creator"):
            self.assertEqual(current[key], place[key])
        # Ownership did not move either.
        denied = self.client.delete(f"/api/places/{place['id']}", headers=other_headers)
        self.assertEqual(denied.status_code, 401)

    def test_delete_place(self):
        user_id, headers = self._signup()
        place = self._create_place(headers).json()["place"]

        response = self.client.delete(f"/api/places/{place['id']}", headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Deleted place.")

        self.assertEqual(self.client.get(f"/api/places/{place['id']}").status_code, 404)
        self.assertEqual(self.client.get(f"/api/places/user/{user_id}").status_code, 404)
        self.assertFalse(self.storage.exists(place["image"]))
        users = self.client.get("/api/users").json()["users"]
        self.assertEqual(users[0]["places"], [])

        again = self.client.delete(f"/api/places/{place['id']}", headers=headers)
        self.assertEqual(again.status_code, 404)

    def test_unknown_route(self):
        response = self.client.get("/api/nothing-here")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["message"], "Could not find this route.")

    def test_unexpected_errors_are_not_leaked(self):
        def explode(user_id):
            raise RuntimeError("database password is hunter2")

        self.db.list_places_by_creator = explode
        client = TestClient(self.app, raise_server_exceptions=False)
        response = client.get("/api/places/user/whoever")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["message"], "An unknown error occurred!")

    def test_cors_headers(self):
        response = self.client.get(
            "/api/users", headers={"Origin": "http://localhost:3000"}
        )
        self.assertEqual(response.headers.get("access-control-allow-origin"), "*")


class UploadedImageServingTests(unittest.TestCase):
    def setUp(self):
        self.upload_dir = tempfile.mkdtemp()
        backends = Backends(
            db=InMemoryDbClient(),
            storage=LocalStorageClient(self.upload_dir),
            geocoder=StaticGeocoder(),
        )
        settings = Settings(upload_dir=self.upload_dir, jwt_secret="test-secret")
        self.client = TestClient(create_app(settings=settings, backends=backends))

    def tearDown(self):
        shutil.rmtree(self.upload_dir, ignore_errors=True)

    def test_stored_image_is_served_at_its_reference(self):
        avatar = png_bytes()
        response = self.client.post(
            "/api/users/signup",
            data={"name": "Ada", "email": "ada@example.com", "password": "secret123"},
            files={"image": ("avatar.png", avatar, "image/png")},
        )
        self.assertEqual(response.status_code, 201, response.text)

        image_path = self.client.get("/api/users").json()["users"][0]["image"]
        served = self.client.get(f"/{image_path}")
        self.assertEqual(served.status_code, 200)
        self.assertEqual(served.content, avatar)

        self.assertEqual(self.client.get("/uploads/images/nope.png").status_code, 404)


if __name__ == "__main__":
    unittest.main()
