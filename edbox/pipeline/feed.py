"""
Incremental personalized feed generation.

The generator keeps a buffer of feed items topped up in the background,
steers new batches with the learner's recent likes and skips, and fills in
card images one at a time. Consumers register a listener and receive a
`FeedSnapshot` after every change.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Set, Tuple

from ..core.models.errors import BackendError
from ..core.models.feed import (
    WELCOME_CARD,
    Asset,
    AssetState,
    CardType,
    ContentItem,
    FeedBatch,
    FeedSnapshot,
    Feedback,
    GeneratedItem,
    RemovalReason,
    TopicSignals,
    missing_payload
)
from ..core.models.llm import LLMRequest, Modality
from ..integrations.llm.client import GenerationClient
from ..utils.config import Config, get_config
from . import prompts
from .stage import GenerationStage, MediaStage, with_timeout


logger = logging.getLogger(__name__)

FeedListener = Callable[[FeedSnapshot], None]
ErrorListener = Callable[[str, Exception], None]

FEED_FETCH = "Feed Fetch"
CARD_IMAGE = "Card Image"
SUMMARY_AUDIO = "Summary Audio"
GENIE = "Genie"


class IncrementalFeedGenerator:
    """
    Maintains one learner's feed.

    Args:
        client: Generation client
        config: Buffer sizes, intervals, timeouts and models
        on_change: Called with a snapshot after every mutation
        on_error: Called with the banner message and the cause when the
            feed halts on an error
        welcome_card: Seed the feed with the welcome card; defaults to
            `FEED_WELCOME_CARD`
    """

    def __init__(
        self,
        client: GenerationClient,
        config: Optional[Config] = None,
        on_change: Optional[FeedListener] = None,
        on_error: Optional[ErrorListener] = None,
        welcome_card: Optional[bool] = None
    ):
        self.client = client
        self.config = config or get_config()
        self.on_change = on_change
        self.on_error = on_error
        self.welcome_card = self.config.FEED_WELCOME_CARD if welcome_card is None else welcome_card

        self.items: List[ContentItem] = []
        self.signals = TopicSignals()
        self.interests: List[str] = []
        self.known_ids: Set[str] = set()

        self.is_fetching = False
        self.is_running = False
        self.stopped_by_error = False
        self.error_message: Optional[str] = None

        self._stop = asyncio.Event()
        self._assets_pending = asyncio.Event()
        self._loop_task: Optional[asyncio.Task] = None
        self._asset_task: Optional[asyncio.Task] = None
        self._error_clear: Optional[asyncio.TimerHandle] = None

        self.fetch_stage = GenerationStage(
            FEED_FETCH, client, FeedBatch,
            self._fetch_prompt,
            model=self.config.FAST_TEXT_MODEL,
            system_prompt=prompts.FEED_SYSTEM,
            timeout=self.config.FEED_FETCH_TIMEOUT or None
        )
        self.image_stage = MediaStage(
            CARD_IMAGE, client, Modality.IMAGE,
            lambda prompt: prompt,
            model=self.config.IMAGE_MODEL,
            timeout=self.config.ASSET_TIMEOUT or None
        )
        self.audio_stage = MediaStage(
            SUMMARY_AUDIO, client, Modality.AUDIO,
            lambda item: prompts.summary_audio_prompt(item.title, item.summary),
            model=self.config.TTS_MODEL,
            timeout=self.config.ASSET_TIMEOUT or None
        )

    # Consumer view

    def snapshot(self) -> FeedSnapshot:
        return FeedSnapshot(
            items=[item.model_copy(deep=True) for item in self.items],
            is_fetching=self.is_fetching,
            error_message=self.error_message
        )

    def _notify(self):
        if self.on_change is not None:
            self.on_change(self.snapshot())

    def get_item(self, item_id: str) -> Optional[ContentItem]:
        return next((item for item in self.items if item.id == item_id), None)

    # Lifecycle

    async def start_feed(self, interests: List[str]):
        """
        Seed the feed, fetch the first batch and start the background loops.

        A no-op while the feed is already running. After an error halt,
        calling it again restarts the loops with the buffered items kept.
        """
        if self.is_running:
            logger.debug("start_feed called on a running feed; ignoring")
            return

        await self._join_loops()
        self._stop.clear()
        self.is_running = True
        self.stopped_by_error = False
        self.interests = list(interests)

        if self.welcome_card and WELCOME_CARD.id not in self.known_ids:
            self.known_ids.add(WELCOME_CARD.id)
            self.items.append(WELCOME_CARD.model_copy(deep=True))
            self._notify()

        logger.info(f"Starting feed for interests: {', '.join(self.interests)}")
        await self._fetch(self.config.FEED_INITIAL_BATCH_SIZE)
        if self._stop.is_set():
            return

        self._loop_task = asyncio.create_task(self._buffer_loop())
        self._asset_task = asyncio.create_task(self._asset_worker())

    async def stop_feed(self):
        """Stop both background loops and wait for them to exit."""
        self._stop.set()
        self._assets_pending.set()
        await self._join_loops()
        self.is_running = False
        if self._error_clear is not None:
            self._error_clear.cancel()
            self._error_clear = None
        logger.info("Feed stopped")

    async def _join_loops(self):
        tasks = [task for task in (self._loop_task, self._asset_task) if task is not None]
        self._loop_task = self._asset_task = None
        if tasks:
            await asyncio.gather(*tasks)

    async def _sleep(self, seconds: float) -> bool:
        """Sleep, waking early on stop. Returns True when stopped."""
        try:
            await asyncio.wait_for(self._stop.wait(), seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def _buffer_loop(self):
        target = self.config.FEED_TARGET_BUFFER_SIZE
        while not self._stop.is_set():
            if len(self.items) < target:
                await self._fetch(self.config.FEED_BATCH_SIZE)
            if await self._sleep(self.config.FEED_POLL_INTERVAL):
                break
        logger.debug("Buffer loop exited")

    # Fetching

    async def request_more(self) -> bool:
        """
        Fetch a batch now, e.g. when the learner nears the end of the feed.

        Returns:
            False without fetching when a fetch is in flight or the feed is
            not running; otherwise whether the fetch succeeded
        """
        if self.is_fetching or not self.is_running or self.stopped_by_error:
            return False
        return await self._fetch(self.config.FEED_BATCH_SIZE)

    async def on_item_viewed(self, index: int) -> bool:
        """Trigger a fetch when `index` is within the prefetch window of the end."""
        if index >= len(self.items) - self.config.PREFETCH_LOOKAHEAD:
            return await self.request_more()
        return False

    def _fetch_prompt(self, count: int) -> str:
        window = self.config.SIGNAL_WINDOW
        return prompts.feed_prompt(
            count,
            self.interests,
            self.signals.recent_positive(window),
            self.signals.recent_negative(window),
            sorted(self.known_ids),
            [item.title for item in self.items]
        )

    async def _fetch(self, count: int) -> bool:
        # the in-flight flag is checked and set with no await in between
        if self.is_fetching or self._stop.is_set():
            return False
        self.is_fetching = True
        self.error_message = None
        self._notify()

        try:
            batch = await self.fetch_stage.execute(count)
        except Exception as e:
            self.is_fetching = False
            self._handle_error(e, "fetching more content")
            return False
        finally:
            self.is_fetching = False

        added = self._accept(batch.feed_items)
        logger.info(f"Fetched {len(batch.feed_items)} feed items, accepted {added}")
        if added:
            self._assets_pending.set()
        self._notify()
        return True

    def _accept(self, generated: List[GeneratedItem]) -> int:
        """Append items whose ids were never seen before."""
        added = 0
        for item in generated:
            if item.id in self.known_ids:
                logger.debug(f"Dropping duplicate feed item id '{item.id}'")
                continue
            missing = missing_payload(item)
            if missing:
                logger.warning(f"Dropping {item.type.value} item '{item.id}' missing {', '.join(missing)}")
                continue
            self.known_ids.add(item.id)
            self.items.append(ContentItem.from_generated(item))
            added += 1
        return added

    def _handle_error(self, error: Exception, context: str):
        """Halt the feed, keeping buffered items, and raise a transient banner."""
        logger.error(f"Feed error during {context}: {error}")
        self._stop.set()
        self._assets_pending.set()
        self.is_running = False
        self.stopped_by_error = True
        self.is_fetching = False

        for asset in self._assets():
            if asset.state == AssetState.GENERATING:
                asset.state = AssetState.ERROR
                asset.error = str(error)

        message = f"An error occurred during {context}. Please try again later."
        self.error_message = message
        self._schedule_error_clear(message)
        self._notify()

        if self.on_error is not None:
            self.on_error(message, error)

    def _schedule_error_clear(self, message: str):
        if self._error_clear is not None:
            self._error_clear.cancel()
        loop = asyncio.get_running_loop()
        self._error_clear = loop.call_later(self.config.ERROR_DISPLAY_SECONDS, self._clear_error, message)

    def _clear_error(self, message: str):
        self._error_clear = None
        if self.error_message == message:
            self.error_message = None
            self._notify()

    # Interactions

    def record_feedback(self, item_id: str, feedback: Feedback) -> bool:
        """Record a like or dislike and feed it into the topic signals."""
        item = self.get_item(item_id)
        if item is None:
            return False
        feedback = Feedback(feedback)
        item.feedback = feedback
        if feedback == Feedback.LIKE:
            self.signals.positive.append(item.title)
        else:
            self.signals.negative.append(item.title)
        self._notify()
        return True

    def remove_item(self, item_id: str, reason: RemovalReason) -> bool:
        """
        Remove a swiped item.

        A skip counts against the item's topic; got_it and answered count
        for it. The id stays reserved for the feed's lifetime.
        """
        item = self.get_item(item_id)
        if item is None:
            return False
        reason = RemovalReason(reason)
        if reason == RemovalReason.SKIP:
            self.signals.negative.append(item.title)
        else:
            self.signals.positive.append(item.title)
        self.items.remove(item)
        self._notify()
        return True

    # Assets

    def _assets(self):
        for item in self.items:
            for asset in (item.placeholder, item.image, item.summary_audio):
                if asset is not None:
                    yield asset
            for slide in item.slides or []:
                yield slide.image

    def _next_pending_asset(self) -> Optional[Tuple[ContentItem, Asset, str]]:
        for item in self.items:
            if item.placeholder is not None and item.placeholder.state == AssetState.PENDING:
                return item, item.placeholder, item.placeholder_image_prompt
            if item.image is not None and item.image.state == AssetState.PENDING:
                return item, item.image, item.image_prompt
            for slide in item.slides or []:
                if slide.image.state == AssetState.PENDING:
                    return item, slide.image, slide.image_prompt
        return None

    async def _asset_worker(self):
        """Generate pending images one at a time in display order."""
        while not self._stop.is_set():
            job = self._next_pending_asset()
            if job is None:
                self._assets_pending.clear()
                await self._assets_pending.wait()
                continue
            await self._generate_image(*job)
            if await self._sleep(self.config.ASSET_THROTTLE_INTERVAL):
                break
        logger.debug("Asset worker exited")

    async def _generate_image(self, item: ContentItem, asset: Asset, prompt: str):
        asset.state = AssetState.GENERATING
        self._notify()
        try:
            image = await self.image_stage.fetch(prompt)
        except Exception as e:
            logger.warning(f"Image generation failed for '{item.id}': {e}")
            asset.state = AssetState.ERROR
            asset.error = str(e)
            if isinstance(e, BackendError) and e.is_auth:
                self._handle_error(e, "card image generation")
            else:
                self._notify()
            return
        asset.state = AssetState.READY
        asset.url = image.data_url
        self._notify()

    async def generate_summary_audio(self, item_id: str) -> Optional[Asset]:
        """
        Narrate an article card's summary.

        Idempotent while the narration is generating or ready.
        """
        item = self.get_item(item_id)
        if item is None or item.type != CardType.ARTICLE:
            return None
        if item.summary_audio is not None and item.summary_audio.state in (AssetState.GENERATING, AssetState.READY):
            return item.summary_audio

        asset = Asset(state=AssetState.GENERATING)
        item.summary_audio = asset
        self._notify()
        try:
            audio = await self.audio_stage.fetch(item, voices={"Narrator": self.config.TTS_PRIMARY_VOICE})
        except Exception as e:
            logger.warning(f"Summary audio failed for '{item.id}': {e}")
            asset.state = AssetState.ERROR
            asset.error = str(e)
            if isinstance(e, BackendError) and e.is_auth:
                self._handle_error(e, "summary audio generation")
            else:
                self._notify()
            return asset
        asset.state = AssetState.READY
        asset.url = audio.data_url
        self._notify()
        return asset

    # Genie

    async def ask_genie(self, item_id: str) -> str:
        """
        Ask Genie to explain an item.

        Raises:
            KeyError: No item with this id is in the feed
            BackendError: The call failed; the feed halts as for a fetch error
        """
        item = self.get_item(item_id)
        if item is None:
            raise KeyError(item_id)

        request = LLMRequest(model=self.config.FAST_TEXT_MODEL, prompt=prompts.genie_prompt(item))
        try:
            response = await with_timeout(self.client.generate(request), self.config.stage_timeout,
                                          GENIE, request.model)
        except Exception as e:
            self._handle_error(e, "genie explanation")
            raise
        return response.text or ""
