"""auth/ -- Credentials, sessions, TOTP and role checks for TeamDesk.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or ops/. api/ and ops/ import from auth/,
not the other way around.
"""
