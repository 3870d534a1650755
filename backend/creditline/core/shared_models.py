"""Shared models for the backend."""

from enum import Enum


class AuthMethod(str, Enum):
    """How the acting identity of a transaction was established."""

    API_KEY = "api_key"
    SESSION = "session"
    IMPERSONATION = "impersonation"
    SYSTEM = "system"


class MembershipRole(str, Enum):
    """Role of a user inside an organization."""

    OWNER = "owner"
    MEMBER = "member"


class ApiKeyType(str, Enum):
    """API key type enum."""

    SECRET = "secret"
    PUBLISHABLE = "publishable"
