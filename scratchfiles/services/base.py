from __future__ import annotations

from abc import ABC, abstractmethod


class BaseService(ABC):
    """
    Base class for services owned by the application lifespan.

    `LifespanTasks.ctor` builds a ready instance, `LifespanTasks.dtor`
    tears it down. Both are awaited from the lifespan context.
    """

    class LifespanTasks(ABC):
        @staticmethod
        @abstractmethod
        async def ctor(*args, **kwargs) -> BaseService:
            raise NotImplementedError

        @staticmethod
        @abstractmethod
        async def dtor(instance: BaseService):
            raise NotImplementedError


type LifespanTasks = BaseService.LifespanTasks
