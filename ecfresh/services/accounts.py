"""
Account directory: who the customer is and how much loyalty credit they hold.

Two interchangeable backends implement the same contract:
  - SqlAccountDirectory: the relational `users`/`addresses` tables
  - ClerkAccountDirectory: Clerk users, loyalty fields in `public_metadata`
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
import logging

from sqlalchemy import func

from models import Users, Addresses
from ecfresh.errors import AccountDirectoryError
from ecfresh.clerk_api import clerk_api
from ecfresh.clerk_api.clerk_api import ClerkError

log = logging.getLogger(__name__)

ADDRESS_FIELDS = ("name", "phone", "address", "pin_code", "landmark", "optional_phone")
PROFILE_FIELDS = ("name", "phone", "pin_code", "loyalty_points", "total_purchases")


@dataclass
class Account:
    id: str
    email: str
    name: str = ""
    phone: str = ""
    pin_code: str = ""
    loyalty_points: Decimal = Decimal("0")
    total_purchases: Decimal = Decimal("0")
    is_admin: bool = False
    addresses: list[dict] = field(default_factory=list)

    @property
    def is_first_order(self) -> bool:
        return self.total_purchases == 0

    @property
    def default_address(self) -> dict | None:
        for address in self.addresses:
            if address.get("is_default"):
                return address
        return self.addresses[0] if self.addresses else None

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "pin_code": self.pin_code,
            "loyalty_points": float(self.loyalty_points),
            "total_purchases": float(self.total_purchases),
            "is_admin": self.is_admin,
            "addresses": self.addresses,
        }


class AccountDirectory(ABC):
    @abstractmethod
    def get(self, account_id: str) -> Account | None:
        raise NotImplementedError

    @abstractmethod
    def get_by_email(self, email: str) -> Account | None:
        raise NotImplementedError

    @abstractmethod
    def create_if_not_exists(self, email: str, name: str | None = None, phone: str | None = None,
                             pin_code: str | None = None) -> Account:
        raise NotImplementedError

    @abstractmethod
    def update(self, account_id: str, **fields) -> Account:
        raise NotImplementedError

    @abstractmethod
    def save_default_address(self, account_id: str, address: dict) -> None:
        raise NotImplementedError


def _clean_profile_fields(fields):
    unknown = set(fields) - set(PROFILE_FIELDS)
    if unknown:
        raise AccountDirectoryError(f"Unknown account fields: {', '.join(sorted(unknown))}")
    return {k: v for k, v in fields.items() if v is not None}


class SqlAccountDirectory(AccountDirectory):
    def __init__(self, db_session) -> None:
        self._db = db_session

    @staticmethod
    def _to_account(user: Users) -> Account:
        return Account(
            id=str(user.id),
            email=user.email,
            name=user.name or "",
            phone=user.phone or "",
            pin_code=user.pin_code or "",
            loyalty_points=Decimal(user.loyalty_points or 0),
            total_purchases=Decimal(user.total_purchases or 0),
            is_admin=bool(user.is_admin),
            addresses=[
                {"id": str(a.id), "is_default": a.is_default, **{f: getattr(a, f) or "" for f in ADDRESS_FIELDS}}
                for a in user.addresses
            ],
        )

    def _user(self, account_id) -> Users | None:
        try:
            return self._db.query(Users).filter_by(id=int(account_id)).first()
        except (TypeError, ValueError):
            return None

    def get(self, account_id):
        user = self._user(account_id)
        return self._to_account(user) if user else None

    def get_by_email(self, email):
        user = self._db.query(Users).filter(func.lower(Users.email) == (email or "").lower()).first()
        return self._to_account(user) if user else None

    def create_if_not_exists(self, email, name=None, phone=None, pin_code=None):
        existing = self.get_by_email(email)
        if existing:
            return existing

        user = Users(
            email=email,
            name=name or email.split("@")[0],
            phone=phone or "",
            pin_code=pin_code or "",
            loyalty_points=Decimal("0"),
            total_purchases=Decimal("0"),
            is_admin=False,
        )
        self._db.add(user)
        self._db.commit()
        log.info("Created account %s for %s", user.id, email)
        return self._to_account(user)

    def update(self, account_id, **fields):
        fields = _clean_profile_fields(fields)
        user = self._user(account_id)
        if not user:
            raise AccountDirectoryError(f"Account {account_id} not found.")
        for key, value in fields.items():
            setattr(user, key, value)
        user.updated_at = func.now()
        self._db.commit()
        self._db.refresh(user)
        return self._to_account(user)

    def save_default_address(self, account_id, address):
        user = self._user(account_id)
        if not user:
            raise AccountDirectoryError(f"Account {account_id} not found.")

        current = next((a for a in user.addresses if a.is_default), None)
        if current is None:
            current = Addresses(user_id=user.id, is_default=True)
            self._db.add(current)
        for f in ADDRESS_FIELDS:
            setattr(current, f, address.get(f) or "")
        self._db.commit()


class ClerkAccountDirectory(AccountDirectory):
    """
    Clerk owns identity; storefront fields ride along in public_metadata:
    {"phone", "pin_code", "loyalty_points", "total_purchases", "is_admin", "addresses"}.
    """

    def __init__(self, api_key: str, api_url: str = clerk_api.DEFAULT_API_URL) -> None:
        if not api_key:
            raise AccountDirectoryError("CLERK_SECRET_KEY is not configured.")
        self._api_key = api_key
        self._api_url = api_url

    @staticmethod
    def _to_account(user: dict) -> Account:
        meta = user.get("public_metadata") or {}
        return Account(
            id=user["id"],
            email=clerk_api.primary_email(user) or "",
            name=user.get("first_name") or "",
            phone=meta.get("phone") or "",
            pin_code=meta.get("pin_code") or "",
            loyalty_points=Decimal(str(meta.get("loyalty_points", 0))),
            total_purchases=Decimal(str(meta.get("total_purchases", 0))),
            is_admin=bool(meta.get("is_admin", False)),
            addresses=list(meta.get("addresses") or []),
        )

    def get(self, account_id):
        try:
            return self._to_account(clerk_api.get_user(self._api_key, account_id, self._api_url))
        except ClerkError as e:
            log.warning("Clerk lookup failed for %s: %s", account_id, e)
            return None

    def get_by_email(self, email):
        try:
            user = clerk_api.find_user_by_email(self._api_key, email, self._api_url)
        except ClerkError as e:
            raise AccountDirectoryError(str(e))
        return self._to_account(user) if user else None

    def create_if_not_exists(self, email, name=None, phone=None, pin_code=None):
        existing = self.get_by_email(email)
        if existing:
            return existing
        try:
            user = clerk_api.create_user(
                self._api_key,
                email,
                first_name=name or email.split("@")[0],
                public_metadata={
                    "phone": phone or "",
                    "pin_code": pin_code or "",
                    "loyalty_points": 0,
                    "total_purchases": 0,
                    "is_admin": False,
                    "addresses": [],
                },
                api_url=self._api_url,
            )
        except ClerkError as e:
            raise AccountDirectoryError(str(e))
        return self._to_account(user)

    def update(self, account_id, **fields):
        fields = _clean_profile_fields(fields)
        meta = {}
        for key in ("phone", "pin_code"):
            if key in fields:
                meta[key] = fields[key]
        for key in ("loyalty_points", "total_purchases"):
            if key in fields:
                meta[key] = float(fields[key])
        try:
            if "name" in fields:
                clerk_api.update_user(self._api_key, account_id, first_name=fields["name"], api_url=self._api_url)
            user = clerk_api.merge_public_metadata(self._api_key, account_id, meta, self._api_url)
        except ClerkError as e:
            raise AccountDirectoryError(str(e))
        return self._to_account(user)

    def save_default_address(self, account_id, address):
        account = self.get(account_id)
        if account is None:
            raise AccountDirectoryError(f"Account {account_id} not found.")
        saved = {f: address.get(f) or "" for f in ADDRESS_FIELDS}
        saved["is_default"] = True
        others = [dict(a, is_default=False) for a in account.addresses if not a.get("is_default")]
        try:
            clerk_api.merge_public_metadata(
                self._api_key, account_id, {"addresses": [saved, *others]}, self._api_url
            )
        except ClerkError as e:
            raise AccountDirectoryError(str(e))
