# Vault API - RESTful endpoints for the finance vault
#
# API endpoints for vault operations:
# - Register/unlock/lock, PIN rotation
# - CRUD for transactions and categories
# - Plaintext export/import, theme preference
#
# Vault errors are mapped to HTTP status codes by the handler installed in
# api.main, so routes just call through.

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ..vault import PinVault
from .security import verify_session_token

# Global vault instance (one per backend process), created on first use
_vault: Optional[PinVault] = None

router = APIRouter(prefix="/api/vault", tags=["vault"])


def get_vault() -> PinVault:
    """FastAPI dependency returning the process-wide vault."""
    global _vault
    if _vault is None:
        _vault = PinVault.open()
    return _vault


def set_vault(vault: Optional[PinVault]) -> None:
    """Replace the process-wide vault (for testing)."""
    global _vault
    _vault = vault


# Request/Response Models
class PinRequest(BaseModel):
    pin: str = Field(..., pattern=r"^[0-9]{4}$")


class ChangePinRequest(BaseModel):
    current_pin: str
    new_pin: str = Field(..., pattern=r"^[0-9]{4}$")


class TransactionCreate(BaseModel):
    id: Optional[str] = None
    date: str
    type: str
    categoryId: Optional[str] = None
    categoryName: Optional[str] = None
    amount: int
    note: Optional[str] = None


class TransactionUpdate(BaseModel):
    date: Optional[str] = None
    type: Optional[str] = None
    categoryId: Optional[str] = None
    categoryName: Optional[str] = None
    amount: Optional[int] = None
    note: Optional[str] = None


class CategoryCreate(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    type: str


class ThemeRequest(BaseModel):
    theme: str


class VaultStatusResponse(BaseModel):
    has_pin: bool
    is_unlocked: bool
    lockout_remaining: float


# Endpoints

@router.get("/status", response_model=VaultStatusResponse)
async def get_vault_status(
    token: str = Depends(verify_session_token),
    vault: PinVault = Depends(get_vault),
):
    """Whether a PIN exists, whether the vault is unlocked, back-off left."""
    return VaultStatusResponse(
        has_pin=vault.has_pin(),
        is_unlocked=vault.is_unlocked,
        lockout_remaining=round(vault.lockout_remaining, 1),
    )


@router.post("/register")
async def register_pin(
    request: PinRequest,
    token: str = Depends(verify_session_token),
    vault: PinVault = Depends(get_vault),
):
    """
    Register the first PIN and unlock.

    Refused once a PIN exists: use /change-pin to rotate it, so a stray
    call cannot orphan the stored ciphertext.
    """
    if vault.has_pin():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A PIN is already registered. Use change-pin instead."
        )
    await vault.register(request.pin)
    return {"success": True, "message": "PIN registered"}


@router.post("/unlock")
async def unlock_vault(
    request: PinRequest,
    token: str = Depends(verify_session_token),
    vault: PinVault = Depends(get_vault),
):
    """Unlock the vault with the PIN. 401 on a wrong PIN or during back-off."""
    if not await vault.unlock(request.pin):
        remaining = vault.lockout_remaining
        detail = "Incorrect PIN"
        if remaining > 0:
            detail = f"Incorrect PIN. Please wait {remaining:.0f} seconds before trying again."
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

    return {"success": True, "message": "Vault unlocked"}


@router.post("/lock")
async def lock_vault(
    token: str = Depends(verify_session_token),
    vault: PinVault = Depends(get_vault),
):
    """Lock the vault and discard the session key."""
    vault.lock()
    return {"success": True, "message": "Vault locked"}


@router.post("/change-pin")
async def change_pin(
    request: ChangePinRequest,
    token: str = Depends(verify_session_token),
    vault: PinVault = Depends(get_vault),
):
    """Rotate the PIN and re-encrypt all data under the new key."""
    if not await vault.change_pin(request.current_pin, request.new_pin):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Current PIN is incorrect"
        )
    return {"success": True, "message": "PIN changed"}


# ── Transactions ─────────────────────────────────────────────────────

@router.get("/transactions")
async def list_transactions(
    token: str = Depends(verify_session_token),
    vault: PinVault = Depends(get_vault),
):
    return {"transactions": await vault.data.get_transactions()}


@router.post("/transactions")
async def add_transaction(
    request: TransactionCreate,
    token: str = Depends(verify_session_token),
    vault: PinVault = Depends(get_vault),
):
    record = request.model_dump(exclude_unset=True)
    saved = await vault.data.add_transaction(record)
    return {"success": True, "transaction": saved}


@router.patch("/transactions/{transaction_id}")
async def update_transaction(
    transaction_id: str,
    request: TransactionUpdate,
    token: str = Depends(verify_session_token),
    vault: PinVault = Depends(get_vault),
):
    updated = await vault.data.update_transaction(
        transaction_id, request.model_dump(exclude_unset=True)
    )
    return {"success": True, "transaction": updated}


@router.delete("/transactions/{transaction_id}")
async def delete_transaction(
    transaction_id: str,
    token: str = Depends(verify_session_token),
    vault: PinVault = Depends(get_vault),
):
    removed = await vault.data.delete_transaction(transaction_id)
    return {"success": True, "removed": removed}


# ── Categories ───────────────────────────────────────────────────────

@router.get("/categories")
async def list_categories(
    token: str = Depends(verify_session_token),
    vault: PinVault = Depends(get_vault),
):
    return {"categories": await vault.data.get_categories()}


@router.post("/categories")
async def add_category(
    request: CategoryCreate,
    token: str = Depends(verify_session_token),
    vault: PinVault = Depends(get_vault),
):
    saved = await vault.data.add_category(request.model_dump(exclude_unset=True))
    return {"success": True, "category": saved}


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: str,
    token: str = Depends(verify_session_token),
    vault: PinVault = Depends(get_vault),
):
    """Delete a category; its transactions keep their name but lose the link."""
    removed = await vault.data.remove_category(category_id)
    return {"success": True, "removed": removed}


# ── Backup files ─────────────────────────────────────────────────────

@router.get("/export")
async def export_data(
    token: str = Depends(verify_session_token),
    vault: PinVault = Depends(get_vault),
):
    """Plaintext backup of all records (user initiated)."""
    return await vault.data.export()


@router.post("/import")
async def import_data(
    payload: Dict[str, Any] = Body(...),
    token: str = Depends(verify_session_token),
    vault: PinVault = Depends(get_vault),
):
    """Replace all records with a previously exported backup."""
    await vault.data.import_data(payload)
    return {"success": True, "message": "Data imported"}


# ── Preferences ──────────────────────────────────────────────────────

@router.get("/theme")
async def get_theme(
    token: str = Depends(verify_session_token),
    vault: PinVault = Depends(get_vault),
):
    return {"theme": vault.get_theme()}


@router.put("/theme")
async def set_theme(
    request: ThemeRequest,
    token: str = Depends(verify_session_token),
    vault: PinVault = Depends(get_vault),
):
    try:
        theme = vault.set_theme(request.theme)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return {"theme": theme}
