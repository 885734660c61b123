"""
Wallet Schemas Module

This module defines Pydantic models for wallet records, seed data and the
request/response bodies of the wallet API.

Key Features:
- Lowercase normalization of every wallet address
- Conversion from raw store documents
- Seed file validation
- Request validation for wallet mutations
"""
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional, Dict, Any
from datetime import datetime
import re

WALLET_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_wallet_address(address: Optional[str]) -> Optional[str]:
    """Lowercase and strip a wallet address; empty values become None."""
    if address is None:
        return None
    address = str(address).strip().lower()
    return address or None


# Store records
class WalletRecord(BaseModel):
    """Association between a user/founder identity and a wallet address."""
    subject_id: str
    wallet_address: str
    is_permanent: bool = False
    source: str = "unknown"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator('subject_id', mode='before')
    @classmethod
    def coerce_subject_id(cls, v):
        return str(v)

    @field_validator('wallet_address', mode='before')
    @classmethod
    def lowercase_address(cls, v):
        normalized = normalize_wallet_address(v)
        if normalized is None:
            raise ValueError("wallet_address must not be empty")
        return normalized

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "WalletRecord":
        """Build a record from a `wallet_addresses` document."""
        return cls(
            subject_id=document["user_id"],
            wallet_address=document.get("wallet_address"),
            is_permanent=bool(document.get("is_permanent", False)),
            source=document.get("source") or "unknown",
            created_at=document.get("created_at"),
            updated_at=document.get("updated_at"),
        )


class StartupWalletRecord(BaseModel):
    """
    The wallet a startup receives funds at.

    wallet_address is a snapshot of the founder's wallet taken at the last
    successful resolution and may be missing on partially written records.
    """
    startup_id: str
    founder_id: Optional[str] = None
    wallet_address: Optional[str] = None
    source: str = "unknown"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator('startup_id', mode='before')
    @classmethod
    def coerce_startup_id(cls, v):
        return str(v)

    @field_validator('founder_id', mode='before')
    @classmethod
    def coerce_founder_id(cls, v):
        if v is None or v == "":
            return None
        return str(v)

    @field_validator('wallet_address', mode='before')
    @classmethod
    def lowercase_address(cls, v):
        return normalize_wallet_address(v)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "StartupWalletRecord":
        """Build a record from a `startup_wallet_addresses` document."""
        return cls(
            startup_id=document["startup_id"],
            founder_id=document.get("founder_id"),
            wallet_address=document.get("wallet_address"),
            source=document.get("source") or "unknown",
            created_at=document.get("created_at"),
            updated_at=document.get("updated_at"),
        )


class StartupFounderAssociation(BaseModel):
    """Seed-time startup to founder mapping."""
    startup_id: str
    founder_id: str


class SeedData(BaseModel):
    """
    Known founder wallets and startup associations loaded at startup.

    `wallets` may also be keyed by startup ids for legacy records that used
    the startup id directly as the wallet lookup key.
    """
    default_founder_id: str
    wallets: Dict[str, str] = Field(default_factory=dict)
    associations: List[StartupFounderAssociation] = Field(default_factory=list)

    @field_validator('wallets', mode='before')
    @classmethod
    def lowercase_wallets(cls, v):
        if not isinstance(v, dict):
            raise ValueError("wallets must be an object of id -> address")
        wallets = {}
        for key, address in v.items():
            normalized = normalize_wallet_address(address)
            if normalized is None:
                raise ValueError(f"empty wallet address for {key}")
            wallets[str(key)] = normalized
        return wallets

    @model_validator(mode='after')
    def check_default_founder(self):
        if self.default_founder_id not in self.wallets:
            raise ValueError(
                f"default_founder_id {self.default_founder_id} has no entry in wallets"
            )
        return self

    @property
    def default_wallet(self) -> str:
        return self.wallets[self.default_founder_id]

    def association_for(self, startup_id: str) -> Optional[StartupFounderAssociation]:
        for association in self.associations:
            if association.startup_id == startup_id:
                return association
        return None


class ResolvedWallet(BaseModel):
    """A resolved address together with the lookup layer that produced it."""
    wallet_address: str
    source: str


class SubjectMatch(BaseModel):
    """Subject found by reverse wallet lookup and where it was found."""
    subject_id: str
    source: str

    @field_validator('subject_id', mode='before')
    @classmethod
    def coerce_subject_id(cls, v):
        return str(v)


# API schemas
class WalletResponse(BaseModel):
    wallet_address: str
    source: str


class UserByWalletResponse(BaseModel):
    user_id: str
    source: str


class ConnectWalletRequest(BaseModel):
    """Body of POST /connect. One of user_id or startup_id is required."""
    user_id: Optional[str] = None
    startup_id: Optional[str] = None
    founder_id: Optional[str] = None
    wallet_address: str
    is_permanent: bool = False

    @field_validator('user_id', 'startup_id', 'founder_id', mode='before')
    @classmethod
    def coerce_ids(cls, v):
        if v is None or v == "":
            return None
        return str(v)

    @field_validator('wallet_address')
    @classmethod
    def validate_wallet_address(cls, v):
        v = v.strip()
        if not WALLET_ADDRESS_PATTERN.match(v):
            raise ValueError("wallet_address must be a 0x-prefixed 40 hex digit address")
        return v.lower()


class ConnectWalletResponse(BaseModel):
    success: bool
    wallet_address: str
    user_id: Optional[str] = None
    startup_id: Optional[str] = None
    founder_id: Optional[str] = None


class DisconnectWalletRequest(BaseModel):
    user_id: str

    @field_validator('user_id', mode='before')
    @classmethod
    def coerce_user_id(cls, v):
        return str(v)


class DisconnectWalletResponse(BaseModel):
    success: bool
    user_id: str


class WalletStatusResponse(BaseModel):
    wallets_exist: bool
    user_wallets: int
    startup_wallets: int


class InitializeResponse(BaseModel):
    success: bool
