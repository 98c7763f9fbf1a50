"""
Token and input validation package.

Provides the building blocks the Auth service uses before trusting a
request:

- token_service: issues HS256 identity tokens and verifies them, either
  from an Authorization header mapping or from an explicit token string.
- request_validator: length and emptiness rules for free-text names.

Both raise classified failures from shared.errors and never return a bare
success flag.
"""
