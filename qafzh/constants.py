import enum

# Optional leading "+", then 5 to 15 digits with no leading zero
PHONE_REGEX = r"^\+?[1-9]\d{4,14}$"

# At least one lowercase, uppercase, digit and special character
PASSWORD_REGEX = r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&]).{6,}$"

URL_REGEX = r"^https?://.+"

MAX_PRICE = 999_999_999
MAX_IMAGES = 10

class AccountRole(str, enum.Enum):
    user = "user"
    admin = "admin"

class ListingStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    sold = "sold"
    inactive = "inactive"

class ListingCategory(str, enum.Enum):
    inverter = "Inverter"
    panel = "Panel"
    battery = "Battery"
    accessory = "Accessory"
    panel_bases = "Panel bases"
    cable = "Cable"
    controller = "Controller"
    monitor = "Monitor"
    other = "Other"

class ListingCondition(str, enum.Enum):
    new = "New"
    used = "Used"
    needs_repair = "Needs Repair"
    refurbished = "Refurbished"

class Currency(str, enum.Enum):
    yer = "YER"
    usd = "USD"
    sar = "SAR"
    yer_south = "YER_SOUTH"
