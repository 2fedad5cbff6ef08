from fastapi import Depends

from shared.utils import Settings, get_settings
from shared.midtrans import MidtransClient
from shared.order_store import OrderStore


def get_gateway(settings: Settings = Depends(get_settings)) -> MidtransClient:
    return MidtransClient(settings)


def get_order_store(settings: Settings = Depends(get_settings)) -> OrderStore:
    return OrderStore(settings)
