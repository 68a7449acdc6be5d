"""Authentication configuration."""

from pydantic import BaseModel, EmailStr, Field, model_validator


class AuthConfig(BaseModel):
    """
    Authentication configuration.

    All durations are in their natural units (minutes for short durations,
    hours for longer ones) to make configuration intuitive.
    """

    # One-time passcode settings
    otp_expiry_minutes: int = Field(
        default=15,
        description="How long a signup verification code remains valid",
        ge=1,
        le=60,
    )

    # Password settings
    reset_token_expiry_minutes: int = Field(
        default=60,
        description="How long a password reset link remains valid",
        ge=5,
        le=1440,
    )
    password_hash_rounds: int = Field(
        default=12,
        description="bcrypt cost factor",
        ge=4,
        le=16,
    )
    password_min_length: int = Field(
        default=8,
        description="Minimum length for new passwords",
        ge=1,
        le=128,
    )

    # Session settings
    session_secret: str = Field(
        ...,
        description="HMAC secret used to sign session tokens",
        min_length=32,
    )
    session_expiry_hours: int = Field(
        default=24,
        description="Session token lifetime in hours",
        ge=1,
        le=720,
    )
    session_cookie_name: str = Field(
        default="session_token",
        description="Cookie carrying the session token",
    )
    session_cookie_secure: bool = Field(
        default=True,
        description="Only send the session cookie over HTTPS",
    )

    # Notifications
    notification_recipient: EmailStr = Field(
        ...,
        description="Operator inbox that receives every verification code and reset link",
    )
    notify_account_email: bool = Field(
        default=False,
        description="Send codes and links to the account's own email instead of the operator inbox",
    )
    rollback_signup_on_notification_failure: bool = Field(
        default=False,
        description="Delete the new account when its verification code cannot be sent",
    )

    # Rate limiting
    rate_limit_attempts: int = Field(
        default=5,
        description="Max attempts per email per action per window",
        ge=1,
        le=20,
    )
    rate_limit_window_minutes: int = Field(
        default=15,
        description="Rate limit window duration",
        ge=1,
        le=60,
    )

    # Maintenance
    signup_sweep_interval_seconds: int = Field(
        default=300,
        description="How often expired unverified signups are purged",
        ge=10,
    )

    # Application
    app_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL for password reset links",
    )
    login_path: str = Field(
        default="/auth/login",
        description="Where unauthenticated page requests are sent",
    )
    landing_path: str = Field(
        default="/dashboard",
        description="Where authenticated users are sent from public-only pages",
    )
    reset_password_path: str = Field(
        default="/auth/reset-password",
        description="Page the emailed reset link opens; always reachable without a session",
    )
    public_only_paths: list[str] = Field(
        default=["/auth/login", "/auth/signup", "/auth/error", "/auth/reset-password"],
        description="Pages reachable only without a session",
    )
    bypass_paths: list[str] = Field(
        default=["/api/auth/", "/health", "/docs", "/openapi.json", "/static/", "/favicon.ico"],
        description="Paths the route guard never inspects",
    )

    @model_validator(mode="after")
    def reset_page_is_public(self) -> "AuthConfig":
        if self.reset_password_path not in self.public_only_paths:
            self.public_only_paths = [*self.public_only_paths, self.reset_password_path]
        return self
