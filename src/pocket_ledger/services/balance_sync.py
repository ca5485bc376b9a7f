"""
Balance-sync subscribers.

One subscriber per transaction lifecycle event. Each turns its event into at
most one BalanceAdjustment and hands it to UpdateAccountBalance. They are not
replay-safe: handling the same event twice moves the balance twice, so the
bus delivers each event at most once per publish call.
"""
from abc import abstractmethod
from typing import List, Optional, Type

from pocket_ledger.domain.enums import BalanceOperation, TransactionDirection
from pocket_ledger.domain.errors import CurrencyMismatchError
from pocket_ledger.domain.events import (
    DomainEvent,
    DomainEventSubscriber,
    TransactionAmountUpdated,
    TransactionCreated,
    TransactionDeleted,
    TransactionDirectionUpdated,
)
from pocket_ledger.services.accounts import BalanceAdjustment, UpdateAccountBalance
from pocket_ledger.utils.logging import get_logger

logger = get_logger(__name__)


class BalanceSyncSubscriber(DomainEventSubscriber):
    """Base for subscribers that translate one event into a balance adjustment"""

    event_class: Type[DomainEvent]

    def __init__(self, update_account_balance: UpdateAccountBalance):
        self.update_account_balance = update_account_balance

    def subscribed_to(self) -> List[Type[DomainEvent]]:
        return [self.event_class]

    @abstractmethod
    def adjustment(self, event) -> Optional[BalanceAdjustment]:
        """The adjustment this event calls for, or None when it has no balance effect"""
        pass

    async def on(self, event: DomainEvent) -> None:
        adjustment = self.adjustment(event)
        if adjustment is None:
            logger.debug(
                "Event has no balance effect",
                subscriber=repr(self),
                event_name=event.event_name,
                event_id=event.event_id,
            )
            return

        await self.update_account_balance.apply(adjustment)


class UpdateAccountBalanceOnTransactionCreated(BalanceSyncSubscriber):
    event_class = TransactionCreated

    def adjustment(self, event: TransactionCreated) -> Optional[BalanceAdjustment]:
        operation = (
            BalanceOperation.ADD
            if event.direction is TransactionDirection.INBOUND
            else BalanceOperation.SUBTRACT
        )
        return BalanceAdjustment(
            account_id=event.account_id,
            operation=operation,
            amount=event.amount.amount,
            currency=event.amount.currency,
        )


class UpdateAccountBalanceOnTransactionAmountUpdated(BalanceSyncSubscriber):
    event_class = TransactionAmountUpdated

    def adjustment(self, event: TransactionAmountUpdated) -> Optional[BalanceAdjustment]:
        if not event.amount.same_currency(event.previous_amount):
            raise CurrencyMismatchError(event.previous_amount.currency, event.amount.currency)

        delta = event.amount.amount - event.previous_amount.amount
        if delta == 0:
            return None

        # inbound: a bigger amount adds more; outbound: a bigger amount takes more
        balance_delta = delta * event.direction.sign
        operation = BalanceOperation.ADD if balance_delta >= 0 else BalanceOperation.SUBTRACT

        return BalanceAdjustment(
            account_id=event.account_id,
            operation=operation,
            amount=abs(balance_delta),
            currency=event.amount.currency,
        )


class UpdateAccountBalanceOnTransactionDirectionUpdated(BalanceSyncSubscriber):
    event_class = TransactionDirectionUpdated

    def adjustment(self, event: TransactionDirectionUpdated) -> Optional[BalanceAdjustment]:
        if event.direction is event.previous_direction:
            return None

        # undo the old direction and apply the new one: twice the amount
        operation = (
            BalanceOperation.ADD
            if event.direction is TransactionDirection.INBOUND
            else BalanceOperation.SUBTRACT
        )
        return BalanceAdjustment(
            account_id=event.account_id,
            operation=operation,
            amount=event.amount.multiply(2).amount,
            currency=event.amount.currency,
        )


class UpdateAccountBalanceOnTransactionDeleted(BalanceSyncSubscriber):
    event_class = TransactionDeleted

    def adjustment(self, event: TransactionDeleted) -> Optional[BalanceAdjustment]:
        operation = (
            BalanceOperation.SUBTRACT
            if event.direction is TransactionDirection.INBOUND
            else BalanceOperation.ADD
        )
        return BalanceAdjustment(
            account_id=event.account_id,
            operation=operation,
            amount=event.amount.amount,
            currency=event.amount.currency,
        )


def balance_sync_subscribers(
    update_account_balance: UpdateAccountBalance,
) -> List[BalanceSyncSubscriber]:
    """The static list of balance-sync subscribers registered on the bus"""
    return [
        UpdateAccountBalanceOnTransactionCreated(update_account_balance),
        UpdateAccountBalanceOnTransactionAmountUpdated(update_account_balance),
        UpdateAccountBalanceOnTransactionDirectionUpdated(update_account_balance),
        UpdateAccountBalanceOnTransactionDeleted(update_account_balance),
    ]
