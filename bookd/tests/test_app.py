import asyncio
import unittest

from fastapi.testclient import TestClient

from bookd.app import create_app
from bookd.auth import AuthUser, InMemoryAuthProvider
from bookd.config import IN_MEMORY_DATABASE_URL
from bookd.db import Database
from bookd.dependencies import get_auth_provider, get_database, get_media_host
from bookd.media import InMemoryMediaHost
from bookd.tests.helpers import image_bytes


def gig_payload(**overrides):
    payload = {
        "title": "Jazz Trio Pianist",
        "description": "Friday night sets.",
        "gig_type": "recurring",
        "instruments_needed": ["Piano"],
        "genres": ["Jazz"],
        "city": "Chicago",
        "country": "US",
        "start_date": "2025-09-05",
        "compensation_type": "paid",
        "pay_amount_min": 150,
        "pay_amount_max": 250,
        "application_method": "email",
        "contact_email": "band@example.com",
    }
    payload.update(overrides)
    return payload


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.db = Database(IN_MEMORY_DATABASE_URL)
        self.auth = InMemoryAuthProvider()
        self.media = InMemoryMediaHost()

        app = create_app()
        app.dependency_overrides[get_database] = lambda: self.db
        app.dependency_overrides[get_auth_provider] = lambda: self.auth
        app.dependency_overrides[get_media_host] = lambda: self.media
        self.client = TestClient(app)

        self.headers = self._sign_in("u1", "ana@example.com", "Ana Lopez")
        self.other_headers = self._sign_in("u2", "bo@example.com", "Bo")

    def tearDown(self):
        self.db.dispose()

    def _sign_in(self, user_id, email, name):
        token = self.auth.sign_in(AuthUser(id=user_id, email=email, full_name=name))
        return {"Authorization": f"Bearer {token}"}

    def test_health_is_public(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_requires_session(self):
        for path in ["/api/profile", "/api/gigs", "/api/experience", "/api/musicians"]:
            with self.subTest(path=path):
                self.assertEqual(self.client.get(path).status_code, 401)
        bad = self.client.get("/api/profile", headers={"Authorization": "Bearer nope"})
        self.assertEqual(bad.status_code, 401)
        self.assertEqual(bad.json(), {"detail": "Unauthorized"})

    def test_profile_created_on_first_request(self):
        response = self.client.get("/api/profile", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["user"]["full_name"], "Ana Lopez")
        self.assertEqual(payload["individual_profile"]["user_id"], "u1")
        self.assertEqual(payload["completion_percentage"], 0)
        self.assertEqual(len(payload["missing_fields"]), 6)
        self.assertFalse(payload["is_complete"])

    def test_update_profile(self):
        response = self.client.patch(
            "/api/profile",
            headers=self.headers,
            json={"stage_name": "Ana L", "bio": "Pianist", "instruments": ["Piano"]},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["stage_name"], "Ana L")

        rejected = self.client.patch(
            "/api/profile", headers=self.headers, json={"genres": []}
        )
        self.assertEqual(rejected.status_code, 400)
        self.assertEqual(rejected.json()["detail"], "At least one genre is required")

        summary = self.client.get("/api/profile", headers=self.headers).json()
        self.assertEqual(summary["completion_percentage"], 50)

    def test_public_profile(self):
        self.client.get("/api/profile", headers=self.other_headers)
        self.client.post(
            "/api/performances", headers=self.other_headers, json={"title": "Gala"}
        )
        response = self.client.get("/api/profile/u2", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["user"]["id"], "u2")
        self.assertEqual([p["title"] for p in response.json()["performances"]], ["Gala"])

        missing = self.client.get("/api/profile/nobody", headers=self.headers)
        self.assertEqual(missing.status_code, 404)

    def test_update_avatar_endpoint(self):
        response = self.client.post(
            "/api/profile/update-avatar",
            headers=self.headers,
            json={"avatar_url": "https://img.test/a.webp", "public_id": "profile_u1_1"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(), {"success": True, "message": "Avatar updated successfully"}
        )
        profile = self.client.get("/api/profile", headers=self.headers).json()
        self.assertEqual(profile["user"]["avatar_url"], "https://img.test/a.webp")

    def test_delete_image_endpoint(self):
        missing = self.client.post(
            "/api/profile/delete-image", headers=self.headers, json={}
        )
        self.assertEqual(missing.status_code, 400)
        self.assertEqual(missing.json()["detail"], "Public ID is required")

        # Host failures still report success.
        response = self.client.post(
            "/api/profile/delete-image", headers=self.headers, json={"public_id": "gone"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(), {"success": True, "message": "Image deleted successfully"}
        )

    def test_avatar_upload_and_delete(self):
        response = self.client.post(
            "/api/profile/avatar",
            headers=self.headers,
            files={"file": ("me.png", image_bytes(), "image/png")},
        )
        self.assertEqual(response.status_code, 201)
        avatar_url = response.json()["avatar_url"]
        self.assertEqual(len(self.media.stored_images), 1)

        profile = self.client.get("/api/profile", headers=self.headers).json()
        self.assertEqual(profile["user"]["avatar_url"], avatar_url)

        deleted = self.client.delete("/api/profile/avatar", headers=self.headers)
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(self.media.stored_images, {})

        again = self.client.delete("/api/profile/avatar", headers=self.headers)
        self.assertEqual(again.status_code, 404)

    def test_avatar_upload_rejects_invalid_image(self):
        response = self.client.post(
            "/api/profile/avatar",
            headers=self.headers,
            files={"file": ("me.gif", b"GIF89a", "image/gif")},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()["detail"], "Please select a JPEG, PNG, or WebP image"
        )

    def test_performances_crud(self):
        created = self.client.post(
            "/api/performances",
            headers=self.headers,
            json={"title": "Blue Note", "genre": "Jazz", "performance_date": "2024-02-01"},
        )
        self.assertEqual(created.status_code, 201)
        performance_id = created.json()["id"]

        page = self.client.get("/api/performances", headers=self.headers).json()
        self.assertEqual(page["total"], 1)

        foreign = self.client.get(
            f"/api/performances/{performance_id}", headers=self.other_headers
        )
        self.assertEqual(foreign.status_code, 404)

        patched = self.client.patch(
            f"/api/performances/{performance_id}",
            headers=self.headers,
            json={"venue": "Blue Note NYC"},
        )
        self.assertEqual(patched.json()["venue"], "Blue Note NYC")

        stats = self.client.get("/api/performances/stats", headers=self.headers).json()
        self.assertEqual(stats["genre_breakdown"], {"Jazz": 1})

        search = self.client.get(
            "/api/performances/search", headers=self.headers, params={"q": "nyc"}
        )
        self.assertEqual(len(search.json()), 1)

        recent = self.client.get("/api/performances/recent", params={"genre": "Jazz"})
        self.assertEqual(recent.status_code, 200)
        self.assertEqual(len(recent.json()), 1)

        self.assertEqual(
            self.client.delete(
                f"/api/performances/{performance_id}", headers=self.other_headers
            ).status_code,
            404,
        )
        self.assertEqual(
            self.client.delete(
                f"/api/performances/{performance_id}", headers=self.headers
            ).status_code,
            204,
        )

    def test_experience_flow(self):
        ids = []
        for title in ["Instructor", "Session Player"]:
            response = self.client.post(
                "/api/experience",
                headers=self.headers,
                json={"title": title, "organization": "Studio"},
            )
            self.assertEqual(response.status_code, 201)
            ids.append(response.json()["id"])

        invalid = self.client.post(
            "/api/experience",
            headers=self.headers,
            json={
                "title": "X",
                "organization": "Y",
                "start_date": "2024-01-01",
                "end_date": "2023-01-01",
            },
        )
        self.assertEqual(invalid.status_code, 422)

        reordered = self.client.post(
            "/api/experience/reorder",
            headers=self.headers,
            json={"entry_ids": list(reversed(ids))},
        )
        self.assertEqual(reordered.status_code, 200)
        page = self.client.get("/api/experience", headers=self.headers).json()
        self.assertEqual([e["title"] for e in page["items"]], ["Session Player", "Instructor"])

        toggled = self.client.post(
            f"/api/experience/{ids[0]}/toggle-current", headers=self.headers
        )
        self.assertTrue(toggled.json()["is_current"])

        self.assertEqual(
            self.client.delete(f"/api/experience/{ids[1]}", headers=self.headers).status_code,
            204,
        )
        page = self.client.get("/api/experience", headers=self.headers).json()
        self.assertEqual([e["display_order"] for e in page["items"]], [1])

    def test_gigs_flow(self):
        created = self.client.post("/api/gigs", headers=self.headers, json=gig_payload())
        self.assertEqual(created.status_code, 201)
        gig = created.json()
        self.assertEqual(gig["author"]["name"], "Ana Lopez")
        self.assertEqual(gig["status"], "open")

        self.client.post(
            "/api/gigs",
            headers=self.other_headers,
            json=gig_payload(title="Drummer", instruments_needed=["Drums"], genres=["Rock"]),
        )

        listed = self.client.get(
            "/api/gigs", headers=self.headers, params={"instruments": "Piano, Bass"}
        ).json()
        self.assertEqual(listed["total"], 1)
        self.assertEqual(listed["items"][0]["id"], gig["id"])

        mine = self.client.get("/api/gigs/mine", headers=self.other_headers).json()
        self.assertEqual([g["title"] for g in mine], ["Drummer"])

        near = self.client.get("/api/gigs/near", headers=self.headers, params={"city": "chic"})
        self.assertEqual(len(near.json()), 2)

        forbidden = self.client.patch(
            f"/api/gigs/{gig['id']}", headers=self.other_headers, json={"title": "Mine now"}
        )
        self.assertEqual(forbidden.status_code, 404)

        patched = self.client.patch(
            f"/api/gigs/{gig['id']}", headers=self.headers, json={"status": "filled"}
        )
        self.assertEqual(patched.json()["status"], "filled")

        self.assertEqual(
            self.client.delete(f"/api/gigs/{gig['id']}", headers=self.headers).status_code,
            204,
        )
        self.assertEqual(
            self.client.get(f"/api/gigs/{gig['id']}", headers=self.headers).status_code,
            404,
        )

    def test_gig_validation(self):
        cases = [
            gig_payload(instruments_needed=[]),
            gig_payload(pay_amount_min=500, pay_amount_max=100),
            gig_payload(ensemble_size_min=5, ensemble_size_max=2),
            gig_payload(end_date="2025-01-01"),
            gig_payload(contact_email="not-an-email"),
            gig_payload(gig_type="party"),
        ]
        for payload in cases:
            with self.subTest(payload=payload):
                response = self.client.post("/api/gigs", headers=self.headers, json=payload)
                self.assertEqual(response.status_code, 422)

    def test_gig_update_rejects_null_required_fields(self):
        gig = self.client.post("/api/gigs", headers=self.headers, json=gig_payload()).json()
        for body in [{"instruments_needed": None}, {"title": None}, {"start_date": None}]:
            with self.subTest(body=body):
                response = self.client.patch(
                    f"/api/gigs/{gig['id']}", headers=self.headers, json=body
                )
                self.assertEqual(response.status_code, 422)

        listed = self.client.get("/api/gigs", headers=self.headers)
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.json()["items"][0]["instruments_needed"], ["Piano"])

    def test_gig_partial_update_checks_stored_ranges(self):
        gig = self.client.post("/api/gigs", headers=self.headers, json=gig_payload()).json()
        cases = [
            ({"end_date": "2020-01-01"}, "end_date must not precede start_date"),
            ({"pay_amount_max": 100}, "pay_amount_min must not exceed pay_amount_max"),
        ]
        for body, detail in cases:
            with self.subTest(body=body):
                response = self.client.patch(
                    f"/api/gigs/{gig['id']}", headers=self.headers, json=body
                )
                self.assertEqual(response.status_code, 422)
                self.assertEqual(response.json()["detail"], detail)

        stored = self.client.get(f"/api/gigs/{gig['id']}", headers=self.headers).json()
        self.assertIsNone(stored["end_date"])
        self.assertEqual(stored["pay_amount_max"], 250)

        ok = self.client.patch(
            f"/api/gigs/{gig['id']}", headers=self.headers, json={"end_date": "2025-09-30"}
        )
        self.assertEqual(ok.status_code, 200)

    def test_experience_update_validation(self):
        entry = self.client.post(
            "/api/experience",
            headers=self.headers,
            json={"title": "Cellist", "organization": "Quartet", "start_date": "2022-01-01"},
        ).json()

        nulled = self.client.patch(
            f"/api/experience/{entry['id']}", headers=self.headers, json={"title": None}
        )
        self.assertEqual(nulled.status_code, 422)

        backwards = self.client.patch(
            f"/api/experience/{entry['id']}",
            headers=self.headers,
            json={"end_date": "2021-06-01"},
        )
        self.assertEqual(backwards.status_code, 422)
        self.assertEqual(backwards.json()["detail"], "end_date must not precede start_date")

        page = self.client.get("/api/experience", headers=self.headers).json()
        self.assertEqual(page["items"][0]["title"], "Cellist")
        self.assertIsNone(page["items"][0]["end_date"])

    def test_performance_update_rejects_null_title(self):
        created = self.client.post(
            "/api/performances", headers=self.headers, json={"title": "Gala"}
        ).json()
        response = self.client.patch(
            f"/api/performances/{created['id']}", headers=self.headers, json={"title": None}
        )
        self.assertEqual(response.status_code, 422)

    def test_update_profile_renames_user(self):
        response = self.client.patch(
            "/api/profile",
            headers=self.headers,
            json={"full_name": "Ana Renamed", "headliner": "Jazz pianist"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["headliner"], "Jazz pianist")

        profile = self.client.get("/api/profile", headers=self.headers).json()
        self.assertEqual(profile["user"]["full_name"], "Ana Renamed")

    def test_update_profile_field_rules(self):
        cases = [
            {"full_name": "   "},
            {"full_name": None},
            {"full_name": "x" * 101},
            {"bio": "x" * 501},
            {"headliner": "x" * 101},
            {"website_url": "not a url"},
            {"phone_number": "call me"},
            {"years_experience": 101},
            {"base_rate_per_hour": -1},
            {"travel_distance_km": -5},
            {"looking_for_gigs": None},
        ]
        for body in cases:
            with self.subTest(body=body):
                response = self.client.patch("/api/profile", headers=self.headers, json=body)
                self.assertEqual(response.status_code, 422)

        accepted = self.client.patch(
            "/api/profile",
            headers=self.headers,
            json={"website_url": "https://ana.example.com", "phone_number": "+1 (555) 010-2000"},
        )
        self.assertEqual(accepted.status_code, 200)
        self.assertEqual(accepted.json()["phone_number"], "+1 (555) 010-2000")

    def test_avatar_upload_runs_off_the_event_loop(self):
        calls = []

        class RecordingHost(InMemoryMediaHost):
            def upload_image(self, *args, **kwargs):
                try:
                    asyncio.get_running_loop()
                except RuntimeError:
                    calls.append("worker thread")
                else:
                    calls.append("event loop")
                return super().upload_image(*args, **kwargs)

        self.media = RecordingHost()
        response = self.client.post(
            "/api/profile/avatar",
            headers=self.headers,
            files={"file": ("me.png", image_bytes(), "image/png")},
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(calls, ["worker thread"])

    def test_musicians_search(self):
        self.client.patch(
            "/api/profile",
            headers=self.headers,
            json={"stage_name": "Ana Keys", "instruments": ["Piano"], "genres": ["Jazz"]},
        )
        self.client.patch(
            "/api/profile",
            headers=self.other_headers,
            json={"stage_name": "Bo Drums", "instruments": ["Drums"], "genres": ["Rock"]},
        )
        response = self.client.get(
            "/api/musicians", headers=self.headers, params={"genres": "Rock,Metal"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual([p["stage_name"] for p in response.json()], ["Bo Drums"])

    def test_sign_out(self):
        response = self.client.post("/api/auth/signout", headers=self.headers)
        self.assertEqual(response.status_code, 204)
        self.assertEqual(self.client.get("/api/profile", headers=self.headers).status_code, 401)


if __name__ == "__main__":
    unittest.main()
