"""
Access to the immutable ``ChannelConfig`` built once in ``create_app``.

Overridable in tests through ``app.dependency_overrides``.
"""
from fastapi import Request

from channel_feed.core.config import ChannelConfig


def get_channel_config(request: Request) -> ChannelConfig:
    return request.app.state.channel_config
