from aiogram import Router

from absence_bot.handlers import absence, start


def build_router() -> Router:
    router = Router()
    router.include_router(start.router)
    router.include_router(absence.router)
    return router


__all__ = ["absence", "build_router", "start"]
