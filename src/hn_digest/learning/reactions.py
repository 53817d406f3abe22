"""Learn tag preferences from like reactions."""

from loguru import logger

from ..bot.events import is_like
from ..config import settings
from ..errors import NotFoundError
from ..models import ReactionEvent
from ..storage import PreferenceStore


class ReactionLearner:
    """Boosts an article's tags the first time it is liked.

    Duplicate or flapping reactions are no-ops because the like ledger
    gates the boost.
    """

    def __init__(self, store: PreferenceStore, boost_amount: float | None = None):
        self.store = store
        self.boost_amount = (
            settings.tag_boost_on_like if boost_amount is None else boost_amount
        )

    async def on_like(self, delivery_handle: str) -> bool:
        """Handle a like on a delivered message.

        Args:
            delivery_handle: Transport handle of the liked message

        Returns:
            bool: True if tags were boosted
        """
        try:
            article = await self.store.find_by_handle(delivery_handle)
        except NotFoundError:
            logger.debug(f"Reaction on untracked message {delivery_handle}, ignoring")
            return False

        try:
            if not await self.store.record_like(article.id):
                logger.debug(f"Article {article.id} already liked")
                return False

            await self.store.boost_tags(article.tags, self.boost_amount)
        except Exception as e:
            logger.error(f"Failed to learn from like on article {article.id}: {e}")
            return False

        logger.info(
            f"Article {article.id} liked, boosted tags: {', '.join(sorted(article.tags))}"
        )
        return True

    async def on_reaction(self, event: ReactionEvent) -> bool:
        """Handle a decoded reaction event; only 👍 counts."""
        if not is_like(event):
            return False
        return await self.on_like(str(event.message_id))
