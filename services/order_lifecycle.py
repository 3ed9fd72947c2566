"""
Order lifecycle simulation.

Once an order is placed it moves through kitchen and delivery statuses on a
fixed schedule measured from ``placed_at``:

    pending -> preparing           at T + 1 step
    preparing -> out_for_delivery  at T + 2 steps
    out_for_delivery -> delivered  at T + 3 steps

Each order gets one supervised asyncio task, kept in a registry keyed by
order id so it can be cancelled. Every step re-reads the order first and stops
when the order is already delivered or cancelled. Orders still in flight when
the process stops are picked up again by ``resume_pending``.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional
import logging

from bson import ObjectId
from pymongo.errors import PyMongoError

from core.database import get_orders_collection
from models.order import OrderModel
from schemas.order import OrderStatus, STATUS_SEQUENCE, TERMINAL_STATUSES
from services.view_cache import ViewCache, invalidate_order_views

logger = logging.getLogger(__name__)

# (number of steps after placed_at, status reached)
LIFECYCLE_STEPS = [
    (1, OrderStatus.PREPARING),
    (2, OrderStatus.OUT_FOR_DELIVERY),
    (3, OrderStatus.DELIVERED),
]


def _status_rank(status: str) -> int:
    try:
        return STATUS_SEQUENCE.index(OrderStatus(status))
    except ValueError:
        return len(STATUS_SEQUENCE)


class OrderLifecycleSimulator:
    def __init__(
            self,
            view_cache: ViewCache,
            step: timedelta = timedelta(minutes=5),
            collection_getter=get_orders_collection,
            clock: Callable[[], datetime] = datetime.utcnow,
            sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        self.view_cache = view_cache
        self.step = step
        self._collection_getter = collection_getter
        self._clock = clock
        self._sleep = sleep
        self._tasks: Dict[str, asyncio.Task] = {}

    def schedule(self, order: Dict[str, Any]) -> asyncio.Task:
        """Start advancing the order; must be called from a running event loop."""
        order_id = str(order["_id"])
        self.cancel(order_id)

        task = asyncio.get_running_loop().create_task(self._run(
            order_id,
            order["user_id"],
            order["restaurant_id"],
            order["placed_at"]
        ))
        self._tasks[order_id] = task

        def _forget(done: asyncio.Task):
            if self._tasks.get(order_id) is done:
                del self._tasks[order_id]

        task.add_done_callback(_forget)
        logger.info(f"Scheduled lifecycle for order {order_id}")
        return task

    def cancel(self, order_id: str) -> bool:
        task = self._tasks.pop(order_id, None)
        if task is None:
            return False
        task.cancel()
        logger.info(f"Cancelled lifecycle for order {order_id}")
        return True

    def is_scheduled(self, order_id: str) -> bool:
        return order_id in self._tasks

    @property
    def scheduled_order_ids(self) -> List[str]:
        return list(self._tasks)

    def resume_pending(self) -> List[asyncio.Task]:
        """Reschedule orders that haven't reached a terminal status."""
        active = [status.value for status in STATUS_SEQUENCE if status not in TERMINAL_STATUSES]
        orders = list(self._collection_getter().find({"status": {"$in": active}}))
        tasks = [self.schedule(order) for order in orders]
        if tasks:
            logger.info(f"Resumed lifecycle for {len(tasks)} order(s)")
        return tasks

    async def shutdown(self):
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, order_id: str, user_id: str, restaurant_id: str, placed_at: datetime):
        for steps, status in LIFECYCLE_STEPS:
            due = placed_at + self.step * steps
            delay = (due - self._clock()).total_seconds()
            if delay > 0:
                await self._sleep(delay)

            if not self.advance(order_id, status, user_id=user_id, restaurant_id=restaurant_id):
                return

    def advance(
            self,
            order_id: str,
            status: OrderStatus,
            user_id: Optional[str] = None,
            restaurant_id: Optional[str] = None
    ) -> bool:
        """
        Move the order to ``status``.

        Returns False when the order is gone or already terminal, which ends
        the schedule. A failed write is logged and the schedule carries on.
        """
        orders_collection = self._collection_getter()

        try:
            order = orders_collection.find_one({"_id": ObjectId(order_id)})
        except PyMongoError as e:
            logger.error(f"Failed to read order {order_id} before moving it to {status.value}: {e}")
            return True

        if not order:
            logger.warning(f"Order {order_id} no longer exists, stopping lifecycle")
            return False

        current = order.get("status")
        if current in {s.value for s in TERMINAL_STATUSES}:
            logger.info(f"Order {order_id} is {current}, stopping lifecycle")
            return False

        # Already there, e.g. a restaurant moved it along by hand
        if _status_rank(current) >= _status_rank(status.value):
            return True

        try:
            # Only from the status just read, so a concurrent cancel wins
            result = orders_collection.update_one(
                {"_id": ObjectId(order_id), "status": current},
                {"$set": OrderModel.status_update(status, self._clock())}
            )
        except PyMongoError as e:
            logger.error(f"Failed to move order {order_id} to {status.value}: {e}")
            return True

        if result.matched_count == 0:
            logger.info(f"Order {order_id} changed while moving it to {status.value}, re-checking")
            return self._still_active(orders_collection, order_id)

        logger.info(f"Order {order_id} moved from {current} to {status.value}")
        invalidate_order_views(self.view_cache, {
            "_id": order_id,
            "user_id": user_id or order["user_id"],
            "restaurant_id": restaurant_id or order["restaurant_id"],
        })
        return status not in TERMINAL_STATUSES

    @staticmethod
    def _still_active(orders_collection, order_id: str) -> bool:
        try:
            order = orders_collection.find_one({"_id": ObjectId(order_id)})
        except PyMongoError as e:
            logger.error(f"Failed to re-read order {order_id}: {e}")
            return True
        if not order or order.get("status") in {s.value for s in TERMINAL_STATUSES}:
            logger.info(f"Order {order_id} is no longer active, stopping lifecycle")
            return False
        return True
