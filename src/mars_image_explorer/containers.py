"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from mars_image_explorer.adapters.supabase_photo_store import SupabasePhotoStore
from mars_image_explorer.config import Settings
from mars_image_explorer.services.controllers import (
    FavoritesFeed,
    TimelineFeed,
    TopVotedFeed,
)
from mars_image_explorer.services.queries import PhotoStore, QueryCursorClient
from mars_image_explorer.services.votes import UserContext, VoteCoordinator


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: PhotoStore
    query_client: QueryCursorClient
    vote_coordinator: VoteCoordinator
    close_resources: Callable[[], Awaitable[None]]

    def timeline_feed(
        self, instrument: str | None = None, before_time: int | None = None
    ) -> TimelineFeed:
        """Create a recency feed with configured defaults."""
        return TimelineFeed(
            client=self.query_client,
            coordinator=self.vote_coordinator,
            instrument=instrument or self.settings.default_instrument,
            mission=self.settings.default_mission,
            before_time=before_time,
            timeout_seconds=self.settings.feed_fetch_timeout_seconds,
        )

    def top_voted_feed(self, instrument: str | None = None) -> TopVotedFeed:
        """Create a popularity feed with configured defaults."""
        return TopVotedFeed(
            client=self.query_client,
            coordinator=self.vote_coordinator,
            instrument=instrument or self.settings.default_instrument,
            mission=self.settings.default_mission,
            timeout_seconds=self.settings.feed_fetch_timeout_seconds,
        )

    def favorites_feed(self, user: UserContext) -> FavoritesFeed:
        """Create a feed of the user's voted photos."""
        return FavoritesFeed(
            client=self.query_client,
            coordinator=self.vote_coordinator,
            user=user,
            timeout_seconds=self.settings.feed_fetch_timeout_seconds,
        )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    store = SupabasePhotoStore(supabase_client)
    query_client = QueryCursorClient(
        store=store,
        photos_table=resolved_settings.photos_table,
        user_votes_table=resolved_settings.user_votes_table,
        page_size=resolved_settings.page_size,
    )
    vote_coordinator = VoteCoordinator(
        store=store,
        photos_table=resolved_settings.photos_table,
        user_votes_table=resolved_settings.user_votes_table,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=resolved_settings,
        store=store,
        query_client=query_client,
        vote_coordinator=vote_coordinator,
        close_resources=close_resources,
    )
