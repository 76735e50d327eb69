from .lotteries_crud import LotteriesCRUD
from .transfers_crud import TransfersCRUD

__all__ = ["LotteriesCRUD", "TransfersCRUD"]
