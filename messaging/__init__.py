"""
Messaging layer: platform adapters and the transcription handler.

The handler is platform-agnostic; TelegramPlatform is the only adapter.
"""
