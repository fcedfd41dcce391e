from datetime import datetime
from pydantic import BaseModel
from qafzh.schemas.listing import StatusSummary

class AccountStats(BaseModel):
    total: int
    verified: int
    active: int
    admins: int

class DashboardStats(BaseModel):
    accounts: AccountStats
    listings: StatusSummary
    visible: int
    expiring_soon: int
    new_this_week: int
    generated_at: datetime
