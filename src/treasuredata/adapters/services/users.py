"""Users and API keys (`v3/user/...`)."""

from __future__ import annotations

from treasuredata.adapters.services.base import BaseService, compact, require, seg
from treasuredata.core.domain.models import APIKey, APIKeyListResponse, User, UserListResponse


class UsersService(BaseService):
    def list(self) -> list[User]:
        resp = self._transport.request_json("GET", "v3/user/list", into=UserListResponse)
        return resp.users if resp else []

    def get(self, email: str) -> User:
        email = require("email", email)
        return self._transport.request_json("GET", f"v3/user/show/{seg(email)}", into=User)

    def create(self, email: str, password: str, name: str | None = None) -> User:
        body = compact(
            email=require("email", email),
            password=require("password", password),
            name=name or None,
        )
        return self._transport.request_json("POST", "v3/user/create", body=body, into=User)

    def delete(self, email: str) -> None:
        email = require("email", email)
        self._transport.request("POST", f"v3/user/delete/{seg(email)}")

    def list_api_keys(self, email: str) -> list[APIKey]:
        email = require("email", email)
        resp = self._transport.request_json("GET", f"v3/user/apikey/list/{seg(email)}", into=APIKeyListResponse)
        return resp.apikeys if resp else []

    def add_api_key(self, email: str) -> APIKey:
        email = require("email", email)
        return self._transport.request_json("POST", f"v3/user/apikey/add/{seg(email)}", into=APIKey)

    def remove_api_key(self, email: str, key: str) -> None:
        email = require("email", email)
        key = require("key", key)
        self._transport.request("POST", f"v3/user/apikey/remove/{seg(email)}/{seg(key)}")
