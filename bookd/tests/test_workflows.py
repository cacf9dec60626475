import unittest
from unittest.mock import MagicMock, patch

from bookd.auth import AuthUser
from bookd.config import IN_MEMORY_DATABASE_URL
from bookd.db import Database
from bookd.media import InMemoryMediaHost, UploadError
from bookd.services import IndividualProfilesService, ServiceError, UsersService
from bookd.tests.helpers import image_bytes
from bookd.workflows import (
    OperationState,
    ProfilePictureUpload,
    ProfileUpdate,
    public_id_from_url,
)


class OperationStateTests(unittest.TestCase):
    def test_transitions(self):
        state = OperationState()
        state.start()
        self.assertTrue(state.loading)
        self.assertFalse(state.success)

        state.fail("boom", "CODE")
        self.assertFalse(state.loading)
        self.assertEqual((state.error, state.error_code), ("boom", "CODE"))

        state.clear_error()
        self.assertIsNone(state.error)

        state.succeed(progress=100)
        self.assertTrue(state.success)
        self.assertEqual(state.progress, 100)

        state.clear_success()
        self.assertFalse(state.success)
        state.reset()
        self.assertEqual(state, OperationState())


class ProfileUpdateTests(unittest.TestCase):
    def setUp(self):
        self.db = Database(IN_MEMORY_DATABASE_URL)
        self.profiles = IndividualProfilesService(self.db)
        self.profiles.create_individual_profile("u1")
        self.workflow = ProfileUpdate(self.profiles)

    def tearDown(self):
        self.db.dispose()

    def test_rejects_empty_lists(self):
        self.assertIsNone(self.workflow.run("u1", {"instruments": []}))
        self.assertEqual(self.workflow.state.error, "At least one instrument is required")

        self.assertIsNone(self.workflow.run("u1", {"genres": []}))
        self.assertEqual(self.workflow.state.error, "At least one genre is required")

    def test_missing_profile(self):
        errors = []
        self.assertIsNone(self.workflow.run("nobody", {"bio": "x"}, on_error=errors.append))
        self.assertEqual(errors, ["Failed to update profile"])

    def test_service_error_is_reported(self):
        with patch.object(
            self.profiles, "update_individual_profile", side_effect=ServiceError("db down")
        ):
            self.assertIsNone(self.workflow.run("u1", {"bio": "x"}))
        self.assertEqual(self.workflow.state.error, "Failed to update profile")

    def test_success_recomputes_completion(self):
        updated = []
        profile = self.workflow.run(
            "u1",
            {
                "stage_name": "Ana",
                "primary_instrument": "Voice",
                "bio": "Soprano",
                "location": "Lisbon",
                "instruments": ["Voice"],
                "genres": ["Fado"],
            },
            on_success=updated.append,
        )
        self.assertTrue(self.workflow.state.success)
        self.assertTrue(profile.profile_complete)
        self.assertEqual(updated[0].id, profile.id)


class ProfileUpdateUserFieldsTests(unittest.TestCase):
    def setUp(self):
        self.db = Database(IN_MEMORY_DATABASE_URL)
        self.profiles = IndividualProfilesService(self.db)
        self.users = UsersService(self.db, self.profiles)
        self.users.ensure_user(AuthUser(id="u1", email="u1@example.com", full_name="Ana"))
        self.workflow = ProfileUpdate(self.profiles, self.users)

    def tearDown(self):
        self.db.dispose()

    def test_splits_updates_between_user_and_profile(self):
        profile = self.workflow.run(
            "u1", {"full_name": "Ana Maria", "avatar_url": "https://img.test/a.png", "bio": "Alto"}
        )
        self.assertEqual(profile.bio, "Alto")
        user = self.users.get_user_by_id("u1")
        self.assertEqual(user.full_name, "Ana Maria")
        self.assertEqual(user.avatar_url, "https://img.test/a.png")

    def test_name_only_update_still_returns_profile(self):
        profile = self.workflow.run("u1", {"full_name": "Ana Maria"})
        self.assertIsNotNone(profile)
        self.assertTrue(self.workflow.state.success)

    def test_blank_name_is_rejected(self):
        self.assertIsNone(self.workflow.run("u1", {"full_name": "  ", "bio": "x"}))
        self.assertEqual(self.workflow.state.error, "Full name is required")
        self.assertEqual(self.users.get_user_by_id("u1").full_name, "Ana")
        self.assertIsNone(self.profiles.get_individual_profile("u1").bio)

    def test_user_update_failure(self):
        with patch.object(self.users, "update_user", return_value=None):
            self.assertIsNone(self.workflow.run("u1", {"full_name": "Ana Maria"}))
        self.assertEqual(self.workflow.state.error, "Failed to update profile")

    def test_user_fields_need_users_service(self):
        workflow = ProfileUpdate(self.profiles)
        self.assertIsNone(workflow.run("u1", {"full_name": "Ana Maria"}))
        self.assertEqual(self.users.get_user_by_id("u1").full_name, "Ana")


class ProfilePictureUploadTests(unittest.TestCase):
    def setUp(self):
        self.db = Database(IN_MEMORY_DATABASE_URL)
        self.users = UsersService(self.db)
        self.user = self.users.ensure_user(AuthUser(id="u1", email="u1@example.com"))
        self.media = InMemoryMediaHost()
        self.workflow = ProfilePictureUpload(self.media, self.users, folder="bookd/profiles")

    def tearDown(self):
        self.db.dispose()

    @patch("bookd.workflows.time.time", return_value=1700000000.5)
    def test_upload_persists_avatar(self, _):
        url = self.workflow.upload(self.user, image_bytes(), "image/png", "me.png")

        public_id = "bookd/profiles/profile_u1_1700000000500"
        self.assertEqual(url, f"https://example.test/media/{public_id}")
        self.assertIn(public_id, self.media.stored_images)
        self.assertEqual(
            self.media.stored_images[public_id]["tags"], ["profile", "avatar", "u1"]
        )
        self.assertTrue(self.workflow.state.success)
        self.assertEqual(self.workflow.state.progress, 100)

        stored = self.users.get_user_by_id("u1")
        self.assertEqual(stored.avatar_url, url)
        self.assertEqual(stored.avatar_public_id, public_id)

    def test_invalid_image_is_rejected_before_upload(self):
        self.assertIsNone(self.workflow.upload(self.user, image_bytes(50, 50), "image/png"))
        self.assertEqual(self.workflow.state.error, "Image must be at least 100x100 pixels")
        self.assertEqual(self.workflow.state.error_code, "INVALID_FILE")
        self.assertEqual(self.media.stored_images, {})

    def test_host_failure_keeps_error_code(self):
        media = MagicMock()
        media.upload_image.side_effect = UploadError("Upload timeout", "TIMEOUT_ERROR")
        workflow = ProfilePictureUpload(media, self.users)
        self.assertIsNone(workflow.upload(self.user, image_bytes(), "image/png"))
        self.assertEqual(workflow.state.error, "Upload timeout")
        self.assertEqual(workflow.state.error_code, "TIMEOUT_ERROR")
        self.assertEqual(workflow.state.progress, 0)

    def test_persist_failure_uses_generic_message(self):
        with patch.object(self.users, "update_avatar", return_value=None):
            self.assertIsNone(self.workflow.upload(self.user, image_bytes(), "image/png"))
        self.assertEqual(self.workflow.state.error, "Failed to upload profile picture")

    def test_delete_without_avatar(self):
        self.assertFalse(self.workflow.delete(self.user))
        self.assertEqual(self.workflow.state.error, "No profile picture to delete")

    def test_delete_removes_image_and_clears_avatar(self):
        self.workflow.upload(self.user, image_bytes(), "image/png")
        user = self.users.get_user_by_id("u1")

        self.assertTrue(self.workflow.delete(user))
        self.assertEqual(self.media.stored_images, {})
        cleared = self.users.get_user_by_id("u1")
        self.assertIsNone(cleared.avatar_url)
        self.assertIsNone(cleared.avatar_public_id)

    def test_delete_derives_public_id_from_url(self):
        media = MagicMock()
        media.delete_image.return_value = False
        user = self.users.update_avatar("u1", "https://img.test/a/b/profile_u1_9.webp")
        workflow = ProfilePictureUpload(media, self.users)

        self.assertTrue(workflow.delete(user))
        media.delete_image.assert_called_once_with("profile_u1_9")
        self.assertEqual(public_id_from_url("https://x.test/p.png"), "p")


if __name__ == "__main__":
    unittest.main()
