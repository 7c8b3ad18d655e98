from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from services.errors import ValidationError
from services.user_service import normalize_wallet

router = APIRouter(prefix="/api")


def get_wallet(authorization: Optional[str] = Header(default=None)) -> str:
    """Authorization: <wallet> or Bearer <wallet>"""
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    wallet = normalize_wallet(authorization)
    if wallet is None:
        raise HTTPException(status_code=401, detail="Invalid wallet address")
    return wallet


def _service(request: Request, name: str):
    return getattr(request.app.state, name)


def _unwrap(result):
    ok, value = result
    if not ok:
        raise ValidationError(value)
    return value


class ActionPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plot_id: Optional[int] = Field(default=None, alias="plotId")
    seed_id: Optional[str] = Field(default=None, alias="seedId")
    fruit_id: Optional[str] = Field(default=None, alias="fruitId")
    count: Optional[int] = None
    pet_id: Optional[Union[int, str]] = Field(default=None, alias="petId")


class VoucherRequest(BaseModel):
    actionType: str
    data: ActionPayload = Field(default_factory=ActionPayload)


class UnlockPlotRequest(BaseModel):
    plotIndex: int = Field(ge=0)


class ShopBuyRequest(BaseModel):
    itemId: str
    amount: int = Field(default=1, gt=0)


class PetBuyRequest(BaseModel):
    petId: str


@router.get("/user/state")
def user_state(request: Request, wallet: str = Depends(get_wallet)) -> Dict[str, Any]:
    return _service(request, "user_service").get_state(wallet)


@router.post("/actions/request-action-voucher")
def request_action_voucher(req: VoucherRequest, request: Request, wallet: str = Depends(get_wallet)) -> Dict[str, Any]:
    payload = req.data.model_dump(exclude_none=True)
    return _unwrap(_service(request, "voucher_service").issue_voucher(wallet, req.actionType, payload))


@router.post("/plot/unlock")
def unlock_plot(req: UnlockPlotRequest, request: Request, wallet: str = Depends(get_wallet)) -> Dict[str, Any]:
    result = _unwrap(_service(request, "shop_service").unlock_plot(wallet, req.plotIndex))
    return {"success": True, **result}


@router.post("/shop/buy")
def shop_buy(req: ShopBuyRequest, request: Request, wallet: str = Depends(get_wallet)) -> Dict[str, Any]:
    result = _unwrap(_service(request, "shop_service").buy_item(wallet, req.itemId, req.amount))
    return {"success": True, **result}


@router.post("/pet/buy")
def pet_buy(req: PetBuyRequest, request: Request, wallet: str = Depends(get_wallet)) -> Dict[str, Any]:
    result = _unwrap(_service(request, "shop_service").buy_pet(wallet, req.petId))
    return {"success": True, **result}


@router.post("/checkin")
def checkin(request: Request, wallet: str = Depends(get_wallet)) -> Dict[str, Any]:
    result = _unwrap(_service(request, "user_service").daily_checkin(wallet))
    return {"success": True, **result}
