from sqlalchemy import Column, Integer, String, DateTime, Boolean, Enum
from qafzh.constants import AccountRole
from qafzh.database import Base
from qafzh.utils import utcnow

class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    phone = Column(String(20), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False, default="")
    profile_image_url = Column(String, nullable=True)
    hashed_password = Column(String, nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False, index=True)
    verification_code = Column(String, nullable=True)
    verification_code_expires = Column(DateTime, nullable=True)
    role = Column(Enum(AccountRole, name="account_role"), nullable=False, default=AccountRole.user, index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    last_login = Column(DateTime, nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == AccountRole.admin

    def __repr__(self):
        return f"<Account {self.phone} role={self.role.value if self.role else None}>"
