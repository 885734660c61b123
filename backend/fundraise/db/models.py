"""
Database Models Module

SQLAlchemy ORM models for the legacy relational wallet store. Each table
backs one document collection; column names are the document field names.
"""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import declarative_base
from datetime import datetime

Base = declarative_base()


class WalletAddress(Base):
    """Wallet connected by a user or founder."""
    __tablename__ = "wallet_addresses"

    user_id = Column(String, primary_key=True)
    wallet_address = Column(String, index=True, nullable=True)
    is_permanent = Column(Boolean, default=False, nullable=False)
    source = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class StartupWalletAddress(Base):
    """Resolved wallet of a startup, snapshot of its founder's wallet."""
    __tablename__ = "startup_wallet_addresses"

    startup_id = Column(String, primary_key=True)
    founder_id = Column(String, index=True, nullable=True)
    wallet_address = Column(String, nullable=True)
    source = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class UserProfile(Base):
    """Wallet columns of the primary user profile record."""
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    wallet_address = Column(String, index=True, nullable=True)
    wallet_address_updated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class IdentityUser(Base):
    """Users keyed by externally issued identity ids."""
    __tablename__ = "identity_users"

    id = Column(String, primary_key=True)
    wallet_address = Column(String, nullable=True)
    updated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class StartupProfile(Base):
    """
    Wallet columns of the primary startup record. wallet_address and
    founder_wallet_address carry the same value for older readers.
    """
    __tablename__ = "startups"

    id = Column(String, primary_key=True)
    founder_id = Column(String, nullable=True)
    wallet_address = Column(String, nullable=True)
    founder_wallet_address = Column(String, nullable=True)
    wallet_address_updated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


COLLECTION_MODELS = {
    WalletAddress.__tablename__: WalletAddress,
    StartupWalletAddress.__tablename__: StartupWalletAddress,
    UserProfile.__tablename__: UserProfile,
    IdentityUser.__tablename__: IdentityUser,
    StartupProfile.__tablename__: StartupProfile,
}
