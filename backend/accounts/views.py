"""
Accounts app views.

All views follow the **Thin View** pattern: validate input via
serializers, delegate to the service layer, and return the result
wrapped in a DRF ``Response``.

View Map
--------
- ``RegisterView`` — POST /auth/register/
- ``LoginView``    — POST /auth/login/
- ``MeView``       — GET /me/
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    PortalTokenObtainPairSerializer,
    RegisterRequestSerializer,
    UserDetailSerializer,
)
from .services import UserRegistrationService


class RegisterView(APIView):
    """
    POST /api/accounts/auth/register/

    Public endpoint.  Creates a citizen account.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Register a citizen account",
        request=RegisterRequestSerializer,
        responses={
            201: OpenApiResponse(response=UserDetailSerializer, description="Account created."),
            409: OpenApiResponse(description="Username, email or phone already taken."),
        },
        tags=["Accounts"],
    )
    def post(self, request: Request) -> Response:
        serializer = RegisterRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = UserRegistrationService.register_user(serializer.validated_data)
        return Response(UserDetailSerializer(user).data, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """
    POST /api/accounts/auth/login/

    Public endpoint.  Authenticates via username, email or phone number
    plus password and returns a JWT pair with the user's profile.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Log in",
        request=PortalTokenObtainPairSerializer,
        responses={
            200: OpenApiResponse(description="JWT access / refresh pair plus the user profile."),
            400: OpenApiResponse(description="Invalid credentials."),
        },
        tags=["Accounts"],
    )
    def post(self, request: Request) -> Response:
        serializer = PortalTokenObtainPairSerializer(
            data=request.data,
            context={"request": request},
        )
        serializer.is_valid(raise_exception=True)

        payload = dict(serializer.validated_data)
        payload["user"] = UserDetailSerializer(serializer.user).data
        return Response(payload, status=status.HTTP_200_OK)


class MeView(APIView):
    """
    GET /api/accounts/me/ → the authenticated user's profile, including
    the portal role and the review stage it maps to.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user",
        responses={200: UserDetailSerializer},
        tags=["Accounts"],
    )
    def get(self, request: Request) -> Response:
        return Response(UserDetailSerializer(request.user).data)
