"""
Authentication for the HR Admin API.

- jwt: token claims and the AuthenticatedUser identity
- token_service: issuing and verifying HS256 tokens
- passwords: bcrypt hashing
- middleware: FastAPI dependencies that authenticate requests
"""
