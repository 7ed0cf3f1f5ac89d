from sqlalchemy import select

from app.pharmops.db.models import Branch


class TenantRepository:
    def __init__(self, db):
        self.db = db

    def get_branch(self, branch_id: str) -> Branch | None:
        return self.db.execute(select(Branch).where(Branch.id == branch_id)).scalars().first()
