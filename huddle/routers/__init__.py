"""
Routers module - API endpoint handlers organized by feature.

- google_auth: Google sign-in (login redirect + callback)
- users: Profile of the signed-in user
- api: Health check and the mixed-auth hello endpoint
"""
