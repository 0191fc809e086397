"""Tests pour api/auth.py"""
import pytest
from django.contrib.auth.models import User
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken
from rest_framework_simplejwt.tokens import RefreshToken

from apps.stories.models import BusinessVertical
from identity.models import Profile, UserRole

PASSWORD = "Str0ng-Passw0rd!"


@pytest.mark.django_db
class TestSignIn:
    """Tests pour l'endpoint sign-in"""

    def setup_method(self):
        self.client = APIClient()
        self.user = User.objects.create_user(
            username="alice@pentest.local", email="alice@pentest.local", password=PASSWORD
        )

    def test_sign_in_missing_fields(self):
        """Email ou mot de passe manquant"""
        response = self.client.post("/api/auth/sign-in/", {"email": "alice@pentest.local"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "Email et mot de passe requis" in response.data["detail"]

    def test_sign_in_bad_password(self):
        """Mot de passe incorrect"""
        response = self.client.post(
            "/api/auth/sign-in/", {"email": "alice@pentest.local", "password": "nope"}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data["detail"] == "Identifiants incorrects."

    def test_sign_in_success_without_role_row(self):
        """Sans ligne user_roles, le rôle résolu est "user" et is_admin est faux"""
        response = self.client.post(
            "/api/auth/sign-in/",
            {"email": "ALICE@pentest.local", "password": PASSWORD},
            format="json",
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.data["access"]
        assert response.data["refresh"]
        assert response.data["role"] == "user"
        assert response.data["is_admin"] is False
        assert response.data["profile"]["display_name"] == "alice"

    def test_sign_in_admin(self):
        """Un admin reçoit is_admin à vrai"""
        UserRole.objects.create(user=self.user, role=UserRole.Role.ADMIN)
        response = self.client.post(
            "/api/auth/sign-in/",
            {"email": "alice@pentest.local", "password": PASSWORD},
            format="json",
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.data["is_admin"] is True

    def test_sign_in_blocked_account(self):
        """Un compte bloqué ne peut pas se connecter"""
        Profile.objects.filter(user=self.user).update(status=Profile.Status.BLOCKED)
        response = self.client.post(
            "/api/auth/sign-in/",
            {"email": "alice@pentest.local", "password": PASSWORD},
            format="json",
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestSignUp:
    """Tests pour l'endpoint sign-up"""

    def setup_method(self):
        self.client = APIClient()

    def test_sign_up_creates_profile(self):
        """Le profil est créé avec le nom affiché dérivé de l'email"""
        response = self.client.post(
            "/api/auth/sign-up/",
            {"email": "bob.durand@pentest.local", "password": PASSWORD},
            format="json",
        )
        assert response.status_code == status.HTTP_201_CREATED
        profile = Profile.objects.get(email="bob.durand@pentest.local")
        assert profile.display_name == "bob.durand"
        assert profile.status == Profile.Status.ACTIVE
        assert response.data["role"] == "user"
        assert not UserRole.objects.filter(user=profile.user).exists()

    def test_sign_up_with_display_name(self):
        response = self.client.post(
            "/api/auth/sign-up/",
            {"email": "carla@pentest.local", "password": PASSWORD, "display_name": "Carla R."},
            format="json",
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["profile"]["display_name"] == "Carla R."

    def test_sign_up_duplicate_email(self):
        """Email déjà utilisé"""
        User.objects.create_user(username="dup@pentest.local", email="dup@pentest.local")
        response = self.client.post(
            "/api/auth/sign-up/",
            {"email": "DUP@pentest.local", "password": PASSWORD},
            format="json",
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_sign_up_weak_password(self):
        """Mot de passe refusé par les validateurs Django"""
        response = self.client.post(
            "/api/auth/sign-up/",
            {"email": "weak@pentest.local", "password": "123"},
            format="json",
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "password" in response.data["errors"]
        assert not User.objects.filter(email="weak@pentest.local").exists()


@pytest.mark.django_db
class TestSessionAndProfile:
    """Tests pour session, profile, change-password et sign-out"""

    def setup_method(self):
        self.client = APIClient()
        self.user = User.objects.create_user(
            username="dora@pentest.local", email="dora@pentest.local", password=PASSWORD
        )
        self.client.force_authenticate(user=self.user)

    def test_session_requires_auth(self):
        response = APIClient().get("/api/auth/session/")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_session_payload(self):
        response = self.client.get("/api/auth/session/")
        assert response.status_code == status.HTTP_200_OK
        assert response.data["user"]["email"] == "dora@pentest.local"
        assert response.data["role"] == "user"
        assert response.data["is_admin"] is False

    def test_update_profile(self):
        """Seuls nom affiché, département et secteur sont modifiables"""
        vertical = BusinessVertical.objects.create(name="Finance")
        response = self.client.patch(
            "/api/auth/profile/",
            {
                "display_name": "Dora E.",
                "department": "Red Team",
                "business_vertical": str(vertical.id),
                "status": "blocked",
            },
            format="json",
        )
        assert response.status_code == status.HTTP_200_OK
        profile = Profile.objects.get(user=self.user)
        assert profile.display_name == "Dora E."
        assert profile.department == "Red Team"
        assert profile.business_vertical_id == vertical.id
        assert profile.status == Profile.Status.ACTIVE

    def test_change_password_wrong_current(self):
        response = self.client.post(
            "/api/auth/change-password/",
            {"current_password": "wrong", "new_password": "N3w-Passw0rd!"},
            format="json",
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data["detail"] == "Mot de passe actuel incorrect."

    def test_change_password_success(self):
        response = self.client.post(
            "/api/auth/change-password/",
            {"current_password": PASSWORD, "new_password": "N3w-Passw0rd!"},
            format="json",
        )
        assert response.status_code == status.HTTP_200_OK
        self.user.refresh_from_db()
        assert self.user.check_password("N3w-Passw0rd!")

    def test_sign_out_blacklists_refresh(self):
        refresh = RefreshToken.for_user(self.user)
        response = APIClient().post(
            "/api/auth/sign-out/", {"refresh": str(refresh)}, format="json"
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.data["clear_session"] is True
        assert response.data["redirect"] == "/auth"
        assert BlacklistedToken.objects.filter(token__jti=refresh["jti"]).exists()

    def test_sign_out_tolerates_bad_token(self):
        """La déconnexion réussit même si la révocation échoue"""
        response = APIClient().post(
            "/api/auth/sign-out/", {"refresh": "not-a-token"}, format="json"
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.data["clear_session"] is True
