"""Delivery worker: turns queued delivery jobs into channel messages.

Per job:
1. Send the first ``inline_limit`` matches as individual messages, in order.
2. Materialize a view artifact with the complete match set.
3. Send a summary with the total; link the view when matches were cut off.

Any failure leaves the job for queue redelivery, so a redelivered job resends
messages that already went out. The one exception is an authorization failure
on the terminal attempt: the subscriber revoked the credential, so the
subscription is deleted and the job is considered finished.
"""

import logging
from typing import Iterable, List, Optional

from jobnotify.config.models import DeliveryConfig
from jobnotify.domain.models import Subscription
from jobnotify.logging import get_logger
from jobnotify.logging.context import log_context
from jobnotify.persistence.base import DeliveryQueue, QueuedMessage, SubscriptionStore

from .channel import NotifyChannel
from .models import DeliveryOutcome, DeliveryStatus, MessageLinks, NotifyAuthError
from .templates import MessageRenderer
from .views import ViewArtifactStore

logger = get_logger(__name__, component="delivery")


class DeliveryWorker:
    """Consumes delivery jobs with at-least-once semantics.

    The worker holds no storage handles of its own; stores and the queue are
    passed to each call so a caller can bind them to one unit of work.
    """

    def __init__(
        self,
        channel: NotifyChannel,
        links: MessageLinks,
        delivery_config: Optional[DeliveryConfig] = None,
        renderer: Optional[MessageRenderer] = None,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.channel = channel
        self.links = links
        self.config = delivery_config or DeliveryConfig()
        self.renderer = renderer or MessageRenderer()
        self.logger = logger_instance or logger

    def is_terminal_attempt(self, attempts: int) -> bool:
        return attempts >= self.config.max_attempts

    def deliver(
        self,
        message: QueuedMessage,
        subscriptions: SubscriptionStore,
        views: ViewArtifactStore,
    ) -> DeliveryOutcome:
        """Deliver one job.

        Returns:
            DELIVERED, or REVOKED when the terminal attempt hit an auth failure

        Raises:
            Exception: Anything else; the caller schedules redelivery
        """
        job = message.job
        listings = job.matched_listings
        inline = listings[: self.config.inline_limit]
        sent = 0

        try:
            for listing in inline:
                self.channel.send(self.renderer.render_listing(listing), job.credential)
                sent += 1

            view_id = views.create(listings, self.config.view_ttl_seconds)
            summary = self.renderer.render_summary(
                total=len(listings),
                shown=len(inline),
                view_url=self.links.view_url(view_id),
                settings_url=self.links.settings_url,
                unsubscribe_url=self.links.unsubscribe_url,
            )
            self.channel.send(summary, job.credential)
            sent += 1

        except NotifyAuthError as e:
            if not self.is_terminal_attempt(message.attempts):
                raise

            removed = subscriptions.delete(job.subscription_id)
            self.logger.warning(
                f"Credential revoked, subscription {job.subscription_id} removed",
                extra={
                    "event": "delivery.revoked",
                    "already_removed": not removed,
                    "messages_sent": sent,
                    "error": str(e),
                },
            )
            return DeliveryOutcome(
                message_id=message.message_id,
                subscription_id=job.subscription_id,
                status=DeliveryStatus.REVOKED,
                attempts=message.attempts,
                messages_sent=sent,
                error=str(e),
            )

        self.logger.info(
            f"Delivered {len(inline)} of {len(listings)} matches to {job.subscription_id}",
            extra={
                "event": "delivery.sent",
                "matched": len(listings),
                "inline": len(inline),
                "view_id": view_id,
            },
        )
        return DeliveryOutcome(
            message_id=message.message_id,
            subscription_id=job.subscription_id,
            status=DeliveryStatus.DELIVERED,
            attempts=message.attempts,
            messages_sent=sent,
            view_id=view_id,
        )

    def handle_delivery_batch(
        self,
        messages: Iterable[QueuedMessage],
        queue: DeliveryQueue,
        subscriptions: SubscriptionStore,
        views: ViewArtifactStore,
    ) -> List[DeliveryOutcome]:
        """Deliver a batch, acking finished jobs and rescheduling failed ones.

        A failing job never stops the rest of the batch.
        """
        outcomes = [
            self.handle_message(message, queue, subscriptions, views) for message in messages
        ]
        self.log_batch_summary(outcomes)
        return outcomes

    def handle_message(
        self,
        message: QueuedMessage,
        queue: DeliveryQueue,
        subscriptions: SubscriptionStore,
        views: ViewArtifactStore,
    ) -> DeliveryOutcome:
        """Deliver one job, then ack it or schedule its redelivery."""
        with log_context(
            message_id=message.message_id,
            subscription_id=message.job.subscription_id,
            attempt=message.attempts,
        ):
            try:
                outcome = self.deliver(message, subscriptions, views)
                queue.ack(message)
            except Exception as e:
                outcome = self._reschedule(message, queue, e)
            return outcome

    def log_batch_summary(self, outcomes: List[DeliveryOutcome]) -> None:
        delivered = sum(1 for o in outcomes if o.status == DeliveryStatus.DELIVERED)
        self.logger.info(
            f"Delivery batch complete: {delivered}/{len(outcomes)} delivered",
            extra={
                "event": "delivery.batch.completed",
                "total": len(outcomes),
                "delivered": delivered,
                "retrying": sum(1 for o in outcomes if o.status == DeliveryStatus.RETRYING),
                "revoked": sum(1 for o in outcomes if o.status == DeliveryStatus.REVOKED),
                "dead": sum(1 for o in outcomes if o.status == DeliveryStatus.DEAD),
            },
        )

    def _reschedule(
        self, message: QueuedMessage, queue: DeliveryQueue, error: Exception
    ) -> DeliveryOutcome:
        error_text = f"{type(error).__name__}: {error}"
        requeued = queue.retry(message, self.config.retry_delay_seconds, error=error_text)

        if requeued:
            self.logger.warning(
                f"Delivery failed on attempt {message.attempts}, will retry: {error}",
                extra={"event": "delivery.retry", "error_type": type(error).__name__},
            )
            status = DeliveryStatus.RETRYING
        else:
            self.logger.error(
                f"Delivery failed on attempt {message.attempts}, giving up: {error}",
                exc_info=error,
                extra={"event": "delivery.dead", "error_type": type(error).__name__},
            )
            status = DeliveryStatus.DEAD

        return DeliveryOutcome(
            message_id=message.message_id,
            subscription_id=message.job.subscription_id,
            status=status,
            attempts=message.attempts,
            error=error_text,
        )

    def send_confirmation(self, subscription: Subscription) -> None:
        """Tell a new subscriber which filter they signed up with.

        Raises:
            NotificationError: If the channel rejects the message
        """
        self.channel.send(
            self.renderer.render_confirmation(subscription.condition),
            subscription.credential,
        )
        self.logger.info(
            f"Confirmation sent to {subscription.id}",
            extra={"event": "delivery.confirmation.sent", "subscription_id": subscription.id},
        )
