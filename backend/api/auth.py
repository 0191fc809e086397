from __future__ import annotations

import logging
from typing import Any, Dict

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from identity.models import UserRole
from identity.services import get_or_create_profile

from .serializers import (
    ChangePasswordSerializer,
    ProfileSerializer,
    ProfileUpdateSerializer,
    SignInSerializer,
    SignUpSerializer,
    UserSerializer,
)

logger = logging.getLogger(__name__)


def session_payload(user) -> Dict[str, Any]:
    """Utilisateur, profil et rôle résolus en une requête."""
    user = (
        get_user_model()
        .objects.select_related("profile", "profile__business_vertical", "user_role")
        .get(pk=user.pk)
    )
    profile = getattr(user, "profile", None) or get_or_create_profile(user)
    user_role = getattr(user, "user_role", None)
    role = user_role.role if user_role else UserRole.Role.USER
    return {
        "user": UserSerializer(user).data,
        "profile": ProfileSerializer(profile).data,
        "role": role,
        "is_admin": role == UserRole.Role.ADMIN,
    }


def _issue_tokens(user) -> Dict[str, str]:
    refresh = RefreshToken.for_user(user)
    refresh["email"] = user.email
    access = refresh.access_token
    access["email"] = user.email
    return {"access": str(access), "refresh": str(refresh)}


@api_view(["POST"])
@permission_classes([AllowAny])
def sign_in(request: Request) -> Response:
    """
    Connexion : POST /api/auth/sign-in/
    Accepte {email, password} et retourne {access, refresh, user, profile, role, is_admin}.
    """
    serializer = SignInSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            {"detail": "Email et mot de passe requis.", "errors": serializer.errors},
            status=status.HTTP_400_BAD_REQUEST,
        )
    email = serializer.validated_data["email"].strip().lower()
    password = serializer.validated_data["password"]

    user = get_user_model().objects.filter(email__iexact=email, is_active=True).first()
    if user is None or not user.check_password(password):
        logger.info("Échec de connexion pour %s", email)
        return Response(
            {"detail": "Identifiants incorrects."},
            status=status.HTTP_401_UNAUTHORIZED,
        )

    profile = get_or_create_profile(user)
    if not profile.is_usable:
        logger.warning("Connexion refusée pour %s (statut %s)", email, profile.status)
        return Response(
            {"detail": "Compte désactivé. Contactez un administrateur."},
            status=status.HTTP_403_FORBIDDEN,
        )

    user.last_login = timezone.now()
    user.save(update_fields=["last_login"])
    return Response(
        {**_issue_tokens(user), **session_payload(user)},
        status=status.HTTP_200_OK,
    )


@api_view(["POST"])
@permission_classes([AllowAny])
def sign_up(request: Request) -> Response:
    """Inscription : le profil est créé par signal, le nom affiché vient de l'email par défaut."""
    serializer = SignUpSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    email = serializer.validated_data["email"].strip().lower()
    password = serializer.validated_data["password"]
    display_name = (serializer.validated_data.get("display_name") or "").strip()

    user_model = get_user_model()
    if user_model.objects.filter(email__iexact=email).exists():
        return Response(
            {"detail": "Un compte existe déjà avec cet email."},
            status=status.HTTP_400_BAD_REQUEST,
        )

    candidate = user_model(username=email, email=email)
    try:
        validate_password(password, user=candidate)
    except DjangoValidationError as exc:
        return Response(
            {"detail": " ".join(exc.messages), "errors": {"password": exc.messages}},
            status=status.HTTP_400_BAD_REQUEST,
        )

    with transaction.atomic():
        user = user_model.objects.create_user(username=email, email=email, password=password)
        profile = get_or_create_profile(user)
        if display_name:
            profile.display_name = display_name
            profile.save(update_fields=["display_name", "updated_at"])

    logger.info("Nouveau compte %s", user.pk)
    return Response(
        {**_issue_tokens(user), **session_payload(user)},
        status=status.HTTP_201_CREATED,
    )


@api_view(["POST"])
@permission_classes([AllowAny])
def sign_out(request: Request) -> Response:
    """Déconnexion : révocation du refresh token si possible, réponse toujours 200."""
    refresh = str(request.data.get("refresh") or "").strip()
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
        except TokenError as exc:
            logger.info("Refresh token non révoqué à la déconnexion: %s", exc)
    return Response(
        {
            "detail": "Déconnecté.",
            "clear_session": True,
            "redirect": "/auth",
        },
        status=status.HTTP_200_OK,
    )


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def session(request: Request) -> Response:
    return Response(session_payload(request.user))


@api_view(["PATCH"])
@permission_classes([IsAuthenticated])
def update_profile(request: Request) -> Response:
    """Mise à jour partielle du profil (nom affiché, département, secteur)."""
    profile = get_or_create_profile(request.user)
    serializer = ProfileUpdateSerializer(profile, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    serializer.save()
    payload = session_payload(request.user)
    payload["detail"] = "Profil mis à jour."
    return Response(payload)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def change_password(request: Request) -> Response:
    serializer = ChangePasswordSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = request.user

    if not user.check_password(serializer.validated_data["current_password"]):
        return Response(
            {"detail": "Mot de passe actuel incorrect."},
            status=status.HTTP_401_UNAUTHORIZED,
        )

    new_password = serializer.validated_data["new_password"]
    try:
        validate_password(new_password, user=user)
    except DjangoValidationError as exc:
        return Response(
            {"detail": " ".join(exc.messages), "errors": {"new_password": exc.messages}},
            status=status.HTTP_400_BAD_REQUEST,
        )

    user.set_password(new_password)
    user.save(update_fields=["password"])
    logger.info("Mot de passe modifié par %s", user.pk)
    return Response({"detail": "Mot de passe modifié."})
