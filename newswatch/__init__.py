"""NewsWatch auth client: OTP flows, session storage and backend gateway."""

__version__ = "0.1.0"
