"""Credential store database models."""

import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, \
    Text, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class DBAccount(Base):  # type: ignore
    """
    One record per account.

    +------------------+--------------+------+-----+---------------------+
    | Field            | Type         | Null | Key | Default             |
    +------------------+--------------+------+-----+---------------------+
    | account_id       | varchar(36)  | NO   | PRI | uuid4               |
    | username         | varchar(100) | NO   | UNI |                     |
    | phone            | varchar(20)  | YES  | UNI | NULL                |
    | role             | varchar(20)  | NO   |     |                     |
    | subscriptions    | json         | NO   |     | []                  |
    | expires_at       | datetime     | NO   |     |                     |
    | session_marker   | varchar(64)  | YES  | MUL | NULL                |
    | last_login_at    | datetime     | YES  |     | NULL                |
    | forced_logout_at | datetime     | YES  |     | NULL                |
    | created_at       | datetime     | NO   |     | CURRENT_TIMESTAMP   |
    +------------------+--------------+------+-----+---------------------+
    """

    __tablename__ = 'cardgate_accounts'

    account_id = Column(String(36), primary_key=True, default=_new_id)
    username = Column(String(100), nullable=False, unique=True, index=True)
    phone = Column(String(20), nullable=True, unique=True)
    role = Column(String(20), nullable=False)
    subscriptions = Column(JSON, nullable=False, default=list)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    session_marker = Column(String(64), nullable=True, index=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    forced_logout_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False,
                        server_default=func.now())


class DBSecret(Base):  # type: ignore
    """Password hashes, owned by the identity verifier."""

    __tablename__ = 'cardgate_secrets'

    account_id = Column(ForeignKey('cardgate_accounts.account_id',
                                   ondelete='CASCADE'),
                        primary_key=True)
    handle = Column(String(100), nullable=False, unique=True, index=True)
    password_enc = Column(String(255), nullable=False)


class DBCard(Base):  # type: ignore
    """A card, mapping a printed identifier to a video URL."""

    __tablename__ = 'cardgate_cards'

    id = Column(String(36), primary_key=True, default=_new_id)
    card_id = Column(String(50), nullable=False, unique=True, index=True)
    video_url = Column(Text, nullable=False)
    title = Column(String(255), nullable=True)
    subject = Column(String(50), nullable=True)
    required_subscriptions = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False,
                        server_default=func.now())


class DBAccessLog(Base):  # type: ignore
    """Tracks video access history."""

    __tablename__ = 'cardgate_access_logs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(ForeignKey('cardgate_accounts.account_id',
                                   ondelete='CASCADE'),
                        nullable=False, index=True)
    card_id = Column(String(50), nullable=False, index=True)
    accessed_at = Column(DateTime(timezone=True), nullable=False, index=True)
