from . import lotteries_routes

__all__ = ["lotteries_routes"]
