from datetime import datetime

from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session

from inventory_admin.auth.models import RefreshToken
from inventory_admin.core.durations import utcnow


class RefreshTokenLedger:
    """Hashed refresh tokens per user, with expiry and revocation flags.

    Rows are only ever inserted or revoked; a token is honoured while its row
    is unrevoked and unexpired, whatever the JWT's own ``exp`` says.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def create(self, user_id: int, token_hash: str, expires_at: datetime) -> RefreshToken:
        row = RefreshToken(
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
            is_revoked=False,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def find_valid(self, user_id: int) -> list[RefreshToken]:
        stmt = (
            select(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > utcnow(),
            )
            .order_by(RefreshToken.created_at.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def revoke_all(self, user_id: int) -> int:
        result = self.db.execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.is_revoked.is_(False))
            .values(is_revoked=True)
        )
        self.db.commit()
        return result.rowcount or 0

    def purge_stale(self, older_than: datetime | None = None) -> int:
        cutoff = older_than or utcnow()
        result = self.db.execute(
            delete(RefreshToken).where(
                or_(RefreshToken.is_revoked.is_(True), RefreshToken.expires_at <= cutoff)
            )
        )
        self.db.commit()
        return result.rowcount or 0
