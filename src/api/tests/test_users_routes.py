"""Route tests for /api/v1/users using in-memory adapters."""

import asyncio
import tempfile
import unittest
from dataclasses import replace
from pathlib import Path

from fastapi.testclient import TestClient

from adapter.fake.media_storage import FakeMediaStorage
from adapter.fake.subscription_repository import FakeSubscriptionRepository
from adapter.fake.user_repository import FakeUserRepository
from api.cookies import ACCESS_COOKIE, REFRESH_COOKIE
from api.dependencies import (
    get_auth_settings,
    get_media_settings,
    get_media_storage,
    get_subscription_repo,
    get_user_repo,
)
from api.main import app
from services.token_service import TokenService
from utils.settings import AuthSettings, MediaSettings

BASE = "/api/v1/users"

TEST_AUTH = AuthSettings(
    access_token_secret='test-access-secret',
    refresh_token_secret='test-refresh-secret',
    bcrypt_rounds=4,
    secure_cookies=False,
)


class UsersRouteTestCase(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.upload_dir = Path(self._tmp.name) / 'uploads'
        self.users = FakeUserRepository()
        self.subs = FakeSubscriptionRepository()
        self.storage = FakeMediaStorage()
        media_settings = MediaSettings(upload_dir=self.upload_dir)

        app.dependency_overrides[get_user_repo] = lambda: self.users
        app.dependency_overrides[get_subscription_repo] = lambda: self.subs
        app.dependency_overrides[get_media_storage] = lambda: self.storage
        app.dependency_overrides[get_auth_settings] = lambda: TEST_AUTH
        app.dependency_overrides[get_media_settings] = lambda: media_settings
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        self._tmp.cleanup()

    def register(self, username='alice', email='a@x.com', password='Password1', with_cover=False):
        files = {'avatar': ('me.png', b'avatar-bytes', 'image/png')}
        if with_cover:
            files['coverImage'] = ('cover.jpg', b'cover-bytes', 'image/jpeg')
        return self.client.post(
            f"{BASE}/register",
            data={'fullName': 'Alice Doe', 'email': email, 'userName': username, 'password': password},
            files=files,
        )

    def login(self, username='alice', password='Password1'):
        return self.client.post(f"{BASE}/login", json={'userName': username, 'password': password})

    def leftover_uploads(self) -> list:
        return list(self.upload_dir.iterdir()) if self.upload_dir.exists() else []


class TestRegister(UsersRouteTestCase):

    def test_register_success(self):
        response = self.register(username='Alice', with_cover=True)

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['userName'], 'alice')
        self.assertEqual(data['email'], 'a@x.com')
        self.assertTrue(data['avatar'].endswith('.png'))
        self.assertTrue(data['coverImage'].endswith('.jpg'))
        self.assertNotIn('passwordHash', data)
        self.assertNotIn('password_hash', data)
        self.assertNotIn('refreshToken', data)
        self.assertEqual(self.leftover_uploads(), [])

    def test_missing_avatar(self):
        response = self.client.post(
            f"{BASE}/register",
            data={'fullName': 'Alice', 'email': 'a@x.com', 'userName': 'alice', 'password': 'Password1'},
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.users.store, {})

    def test_blank_field(self):
        response = self.client.post(
            f"{BASE}/register",
            data={'fullName': ' ', 'email': 'a@x.com', 'userName': 'alice', 'password': 'Password1'},
            files={'avatar': ('me.png', b'avatar-bytes', 'image/png')},
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.leftover_uploads(), [])

    def test_duplicate(self):
        self.register()
        response = self.register(email='other@x.com')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(self.leftover_uploads(), [])

    def test_upload_failure(self):
        self.storage.upload_failures = 3

        response = self.register()

        self.assertEqual(response.status_code, 500)
        self.assertEqual(self.users.store, {})
        self.assertEqual(self.leftover_uploads(), [])


class TestLoginAndSession(UsersRouteTestCase):

    def setUp(self):
        super().setUp()
        self.register()

    def test_login_sets_cookies_and_returns_tokens(self):
        response = self.login()

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['user']['userName'], 'alice')
        self.assertIn('accessToken', data)
        self.assertIn('refreshToken', data)
        self.assertEqual(response.cookies.get(ACCESS_COOKIE), data['accessToken'])
        self.assertEqual(response.cookies.get(REFRESH_COOKIE), data['refreshToken'])
        set_cookie = ' '.join(response.headers.get_list('set-cookie')).lower()
        self.assertIn('httponly', set_cookie)

    def test_login_by_email(self):
        response = self.client.post(f"{BASE}/login", json={'email': 'a@x.com', 'password': 'Password1'})
        self.assertEqual(response.status_code, 200)

    def test_wrong_password(self):
        response = self.login(password='wrong')

        self.assertEqual(response.status_code, 401)
        self.assertNotIn(REFRESH_COOKIE, response.cookies)
        user = self.users.get_by_username('alice')
        self.assertIsNone(user.refresh_token)

    def test_login_requires_identifier(self):
        response = self.client.post(f"{BASE}/login", json={'password': 'Password1'})
        self.assertEqual(response.status_code, 400)

    def test_current_user_with_cookie(self):
        self.login()

        response = self.client.get(f"{BASE}/current-user")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['userName'], 'alice')

    def test_current_user_with_bearer_header(self):
        token = self.login().json()['accessToken']
        self.client.cookies.clear()

        response = self.client.get(f"{BASE}/current-user", headers={'Authorization': f'Bearer {token}'})

        self.assertEqual(response.status_code, 200)

    def test_current_user_unauthenticated(self):
        response = self.client.get(f"{BASE}/current-user")
        self.assertEqual(response.status_code, 401)

    def test_expired_access_token(self):
        user = self.users.get_by_username('alice')
        expired = TokenService(replace(TEST_AUTH, access_token_expire_minutes=-1)).issue_access(user.id)

        response = self.client.get(f"{BASE}/current-user", headers={'Authorization': f'Bearer {expired}'})

        self.assertEqual(response.status_code, 401)

    def test_stale_cookie_falls_back_to_bearer_header(self):
        token = self.login().json()['accessToken']
        user = self.users.get_by_username('alice')
        expired = TokenService(replace(TEST_AUTH, access_token_expire_minutes=-1)).issue_access(user.id)
        self.client.cookies.clear()

        response = self.client.get(f"{BASE}/current-user", headers={
            'Authorization': f'Bearer {token}',
            'Cookie': f'{ACCESS_COOKIE}={expired}',
        })

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['userName'], 'alice')

    def test_refresh_token_rejected_as_access_token(self):
        refresh = self.login().json()['refreshToken']
        self.client.cookies.clear()

        response = self.client.get(f"{BASE}/current-user", headers={'Authorization': f'Bearer {refresh}'})

        self.assertEqual(response.status_code, 401)

    def test_refresh_with_body(self):
        tokens = self.login().json()
        self.client.cookies.clear()

        response = self.client.post(f"{BASE}/refresh-token", json={'refreshToken': tokens['refreshToken']})

        self.assertEqual(response.status_code, 200)
        self.assertNotEqual(response.json()['refreshToken'], tokens['refreshToken'])

    def test_refresh_with_cookie(self):
        self.login()

        response = self.client.post(f"{BASE}/refresh-token")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.cookies.get(REFRESH_COOKIE), response.json()['refreshToken'])

    def test_refresh_missing_token(self):
        response = self.client.post(f"{BASE}/refresh-token")
        self.assertEqual(response.status_code, 401)

    def test_second_login_invalidates_first_refresh_token(self):
        first = self.login().json()
        second = self.login().json()
        self.client.cookies.clear()

        stale = self.client.post(f"{BASE}/refresh-token", json={'refreshToken': first['refreshToken']})
        fresh = self.client.post(f"{BASE}/refresh-token", json={'refreshToken': second['refreshToken']})

        self.assertEqual(stale.status_code, 401)
        self.assertEqual(fresh.status_code, 200)

    def test_logout_revokes_session(self):
        tokens = self.login().json()

        response = self.client.post(f"{BASE}/logout")
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.users.get_by_username('alice').refresh_token)

        self.client.cookies.clear()
        again = self.client.post(f"{BASE}/refresh-token", json={'refreshToken': tokens['refreshToken']})
        self.assertEqual(again.status_code, 401)

    def test_logout_requires_auth(self):
        response = self.client.post(f"{BASE}/logout")
        self.assertEqual(response.status_code, 401)


class TestProfile(UsersRouteTestCase):

    def setUp(self):
        super().setUp()
        self.register()
        self.login()

    def test_change_password(self):
        response = self.client.post(
            f"{BASE}/change-password",
            json={'oldPassword': 'Password1', 'newPassword': 'Password2'},
        )
        self.assertEqual(response.status_code, 200)

        self.assertEqual(self.login(password='Password1').status_code, 401)
        self.assertEqual(self.login(password='Password2').status_code, 200)

    def test_change_password_wrong_old(self):
        response = self.client.post(
            f"{BASE}/change-password",
            json={'oldPassword': 'nope', 'newPassword': 'Password2'},
        )
        self.assertEqual(response.status_code, 401)

    def test_update_account(self):
        response = self.client.patch(
            f"{BASE}/update-account",
            json={'fullName': 'Alice B', 'email': 'alice@x.com'},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['fullName'], 'Alice B')
        self.assertEqual(response.json()['email'], 'alice@x.com')

    def test_update_account_invalid_email(self):
        response = self.client.patch(f"{BASE}/update-account", json={'fullName': 'A', 'email': 'not-an-email'})
        self.assertEqual(response.status_code, 400)

    def test_missing_fields_are_bad_requests(self):
        responses = (
            self.client.post(f"{BASE}/login", json={'userName': 'alice'}),
            self.client.post(f"{BASE}/change-password", json={'newPassword': 'Password2'}),
            self.client.patch(f"{BASE}/update-account", json={'email': 'alice@x.com'}),
        )

        self.assertEqual(tuple(r.status_code for r in responses), (400, 400, 400))
        self.assertEqual(self.users.get_by_username('alice').email, 'a@x.com')

    def test_update_account_email_taken(self):
        self.users.create('bob', 'b@x.com', 'Bob', 'hash', 'https://media.example.test/media/bob.png')

        response = self.client.patch(f"{BASE}/update-account", json={'fullName': 'A', 'email': 'b@x.com'})

        self.assertEqual(response.status_code, 409)

    def test_replace_avatar(self):
        old_avatar = self.users.get_by_username('alice').avatar

        response = self.client.patch(f"{BASE}/avatar", files={'avatar': ('new.webp', b'new', 'image/webp')})

        self.assertEqual(response.status_code, 200)
        new_avatar = response.json()['avatar']
        self.assertNotEqual(new_avatar, old_avatar)
        self.assertTrue(new_avatar.endswith('.webp'))
        self.assertEqual(self.storage.calls[-2:], ['upload', 'delete'])
        self.assertEqual(self.leftover_uploads(), [])

    def test_replace_avatar_missing_file(self):
        response = self.client.patch(f"{BASE}/avatar")
        self.assertEqual(response.status_code, 400)

    def test_replace_cover_image(self):
        response = self.client.patch(
            f"{BASE}/cover-image", files={'coverImage': ('cover.png', b'cover', 'image/png')},
        )

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['coverImage'])

    def test_replace_avatar_requires_auth(self):
        self.client.cookies.clear()
        response = self.client.patch(f"{BASE}/avatar", files={'avatar': ('new.png', b'new', 'image/png')})
        self.assertEqual(response.status_code, 401)


class LoopRecordingStorage(FakeMediaStorage):
    """Records whether each upload ran on the event loop thread."""

    def __init__(self):
        super().__init__()
        self.on_event_loop: list[bool] = []

    def upload(self, local_path):
        try:
            asyncio.get_running_loop()
            self.on_event_loop.append(True)
        except RuntimeError:
            self.on_event_loop.append(False)
        return super().upload(local_path)


class TestBlockingWorkOffEventLoop(UsersRouteTestCase):

    def setUp(self):
        super().setUp()
        self.storage = LoopRecordingStorage()

    def test_uploads_run_in_worker_threads(self):
        self.register()
        self.login()

        response = self.client.patch(f"{BASE}/avatar", files={'avatar': ('new.png', b'new', 'image/png')})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.storage.on_event_loop, [False, False])


class TestChannels(UsersRouteTestCase):

    def setUp(self):
        super().setUp()
        self.register('alice', 'a@x.com')
        self.register('bob', 'b@x.com')

    def test_anonymous_channel_view(self):
        response = self.client.get(f"{BASE}/c/alice")

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['userName'], 'alice')
        self.assertEqual(data['subscribersCount'], 0)
        self.assertFalse(data['isSubscribed'])

    def test_unknown_channel(self):
        self.assertEqual(self.client.get(f"{BASE}/c/carol").status_code, 404)

    def test_subscribe_and_unsubscribe(self):
        self.login('bob')

        subscribed = self.client.post(f"{BASE}/c/alice/subscription")
        self.assertEqual(subscribed.status_code, 200)
        self.assertTrue(subscribed.json()['isSubscribed'])
        self.assertEqual(subscribed.json()['subscribersCount'], 1)

        viewed = self.client.get(f"{BASE}/c/alice")
        self.assertTrue(viewed.json()['isSubscribed'])

        unsubscribed = self.client.delete(f"{BASE}/c/alice/subscription")
        self.assertFalse(unsubscribed.json()['isSubscribed'])
        self.assertEqual(unsubscribed.json()['subscribersCount'], 0)

    def test_cannot_subscribe_to_self(self):
        self.login('alice')
        response = self.client.post(f"{BASE}/c/alice/subscription")
        self.assertEqual(response.status_code, 400)

    def test_subscribe_requires_auth(self):
        response = self.client.post(f"{BASE}/c/alice/subscription")
        self.assertEqual(response.status_code, 401)


if __name__ == '__main__':
    unittest.main()
