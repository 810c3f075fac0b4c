# eventify/infrastructure/settings.py

import os

from dotenv import load_dotenv

from eventify.domain.inventory import InventoryPolicy, ReservationPoint

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# -----------------------------
# Inventory / transactions
# -----------------------------
INVENTORY_RESERVATION_POINT = os.getenv("INVENTORY_RESERVATION_POINT", "BOOKING").upper()
RESTOCK_ON_CANCEL = _env_flag("RESTOCK_ON_CANCEL", False)
LEDGER_INVARIANT_CHECKS = _env_flag("LEDGER_INVARIANT_CHECKS", True)
BOOKING_TX_MAX_ATTEMPTS = int(os.getenv("BOOKING_TX_MAX_ATTEMPTS", "5"))
BOOKING_TX_RETRY_DELAY = float(os.getenv("BOOKING_TX_RETRY_DELAY", "0.05"))

# -----------------------------
# Notifications
# -----------------------------
SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_USE_TLS = _env_flag("SMTP_USE_TLS", True)
EMAIL_FROM = os.getenv("EMAIL_FROM", SMTP_USERNAME or "no-reply@eventify.local")


def default_inventory_policy() -> InventoryPolicy:
    return InventoryPolicy(
        reservation_point=ReservationPoint(INVENTORY_RESERVATION_POINT),
        restock_on_cancel=RESTOCK_ON_CANCEL,
    )
