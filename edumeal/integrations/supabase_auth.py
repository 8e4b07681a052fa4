import httpx

from edumeal.core.config import settings


class IdentityError(Exception):
    pass


class SupabaseAuthClient:
    """Resolves an access token to a user through the identity service."""

    def __init__(self):
        self.base_url = settings.SUPABASE_URL.rstrip("/")
        self.api_key = settings.SUPABASE_API_KEY
        self.timeout = 10

    async def get_user(self, token: str) -> dict:
        if not self.base_url:
            raise IdentityError("Identity service URL not configured")

        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token}",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.get(f"{self.base_url}/auth/v1/user", headers=headers)
        except httpx.HTTPError as e:
            raise IdentityError(f"Identity service unreachable: {e}") from e

        if r.status_code != 200:
            raise IdentityError(f"Identity service rejected token ({r.status_code})")

        data = r.json()
        if not data or not data.get("id"):
            raise IdentityError("Identity service returned no user")
        return data
