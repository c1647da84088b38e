# retail_pos/routers/store_settings.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from retail_pos.database import get_db
from retail_pos.core.auth import get_current_user, get_admin_user
from retail_pos.models.store_settings import StoreSettings, DEFAULT_STORE_SETTINGS
from retail_pos.schemas.store_settings import (
    StoreSettingsUpdate,
    StoreSettingsResponse,
    PublicSettingsResponse,
)

router = APIRouter(prefix="/settings", tags=["Settings"])


def get_or_create_settings(db: Session) -> StoreSettings:
    store = db.query(StoreSettings).order_by(StoreSettings.id).first()

    if store is None:
        store = StoreSettings(**DEFAULT_STORE_SETTINGS)
        db.add(store)
        db.commit()
        db.refresh(store)

    return store


@router.get("", response_model=StoreSettingsResponse)
def get_settings(
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return get_or_create_settings(db)


@router.put("", response_model=StoreSettingsResponse)
def update_settings(
    settings_data: StoreSettingsUpdate,
    db: Session = Depends(get_db),
    admin=Depends(get_admin_user),
):
    store = get_or_create_settings(db)

    store.store_name = settings_data.store_name
    store.address = settings_data.address
    store.logo_url = settings_data.logo_url or None
    store.phone = settings_data.phone or None
    store.tax_rate = settings_data.tax_rate
    store.currency = settings_data.currency
    store.receipt_footer = settings_data.receipt_footer or None

    db.commit()
    db.refresh(store)

    return store


# Login screen branding, no token required
@router.get("/public", response_model=PublicSettingsResponse)
def get_public_settings(db: Session = Depends(get_db)):
    store = db.query(StoreSettings).order_by(StoreSettings.id).first()

    if store is None:
        return {
            "store_name": DEFAULT_STORE_SETTINGS["store_name"],
            "logo_url": "",
            "store_address": "",
            "store_phone": "",
        }

    return {
        "store_name": store.store_name,
        "logo_url": store.logo_url or "",
        "store_address": store.address or "",
        "store_phone": store.phone or "",
    }
