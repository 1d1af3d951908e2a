"""
Integration tests for DispatchEngine against a stubbed HTTP transport.
"""

import pytest

from config import (
    PREF_CLAUDE_API_KEY,
    PREF_CLAUDE_MODEL,
    PREF_CONTEXT_APP_NAME,
    PREF_DEFAULT_ENGINE,
    PREF_GEMINI_API_KEY,
    PREF_MAX_RETRIES,
    PREF_OPENAI_API_KEY,
    PREF_OPENAI_MODEL,
    PREF_TIMEOUT,
)
from dispatch.base import ProviderKind
from dispatch.engine import DispatchEngine
from dispatch.errors import ConfigurationError, ErrorKind, TranslationError

from .fakes import (
    CLAUDE_KEY,
    GEMINI_KEY,
    OPENAI_KEY,
    StubTransport,
    claude_not_found,
    claude_reply,
    gemini_reply,
    json_response,
    openai_reply,
)


def _server_error():
    return json_response({"error": {"code": 500, "message": "internal", "status": "INTERNAL"}}, 500)


@pytest.fixture
def notices():
    return []


@pytest.fixture
def make_engine(store, settings, sleep, notices):
    def factory(*replies, **prefs):
        for key, value in prefs.items():
            store.set(key, value)
        transport = StubTransport(*replies)
        return DispatchEngine(store, transport, settings=settings, notifier=notices.append, sleep=sleep)

    return factory


class TestSession:
    def test_gemini_session(self, make_engine):
        engine = make_engine(**{PREF_GEMINI_API_KEY: GEMINI_KEY})
        context = engine.start_session()
        assert context.engine == "gemini"
        assert context.config.model == "gemini-2.5-flash"
        assert context.config.timeout == 30.0
        assert context.config.max_retries == 2
        assert not context.fell_back

    def test_unknown_engine_defaults_to_gemini(self, make_engine):
        engine = make_engine(**{PREF_DEFAULT_ENGINE: "bard", PREF_GEMINI_API_KEY: GEMINI_KEY})
        assert engine.start_session().config.kind is ProviderKind.GEMINI

    def test_timeout_and_retry_preferences(self, make_engine):
        engine = make_engine(**{PREF_GEMINI_API_KEY: GEMINI_KEY, PREF_TIMEOUT: "5000", PREF_MAX_RETRIES: "-3"})
        context = engine.start_session()
        assert context.config.timeout == 5.0
        assert context.config.max_retries == 0

    def test_missing_openai_key_falls_back_to_gemini(self, make_engine, notices):
        engine = make_engine(**{PREF_DEFAULT_ENGINE: "openai", PREF_GEMINI_API_KEY: GEMINI_KEY})
        context = engine.start_session()
        assert context.engine == "gemini"
        assert context.fell_back
        assert len(notices) == 1
        assert "OpenAI API key is not configured" in notices[0]
        assert "Falling back to Gemini" in notices[0]

    def test_missing_claude_key_falls_back_to_gemini(self, make_engine, notices):
        engine = make_engine(**{PREF_DEFAULT_ENGINE: "claude", PREF_GEMINI_API_KEY: GEMINI_KEY})
        assert engine.start_session().engine == "gemini"
        assert "Anthropic Claude" in notices[0]

    def test_missing_gemini_key_is_fatal(self, make_engine, notices):
        engine = make_engine()
        with pytest.raises(ConfigurationError):
            engine.start_session()
        assert notices == ["Gemini API key is not configured."]

    def test_openai_fallback_without_gemini_key_is_fatal(self, make_engine, notices):
        engine = make_engine(**{PREF_DEFAULT_ENGINE: "openai"})
        with pytest.raises(ConfigurationError):
            engine.start_session()
        assert len(notices) == 2

    def test_env_key_used_when_preference_missing(self, make_engine, settings):
        settings.secrets.openai_api_key = OPENAI_KEY
        engine = make_engine(**{PREF_DEFAULT_ENGINE: "openai"})
        context = engine.start_session()
        assert context.engine == "openai"
        assert context.config.api_key == OPENAI_KEY

    def test_engine_override(self, make_engine):
        engine = make_engine(**{PREF_GEMINI_API_KEY: GEMINI_KEY, PREF_OPENAI_API_KEY: OPENAI_KEY})
        assert engine.start_session("openai").engine == "openai"

    def test_context_directive_uses_default_tone(self, make_engine):
        engine = make_engine(**{PREF_GEMINI_API_KEY: GEMINI_KEY, PREF_CONTEXT_APP_NAME: "Notely"})
        directive = engine.start_session().context_directive
        assert "App: Notely." in directive
        assert "Tone: Clear and instructional." in directive

    def test_session_is_reused(self, make_engine):
        engine = make_engine(**{PREF_GEMINI_API_KEY: GEMINI_KEY})
        assert engine.session() is engine.session()


class TestTranslate:
    @pytest.mark.asyncio
    async def test_hello_to_hola(self, make_engine):
        engine = make_engine(gemini_reply("Hola"), **{PREF_GEMINI_API_KEY: GEMINI_KEY})
        assert await engine.translate("Hello", "en", "es") == "Hola"
        assert engine.transport.calls == 1
        request = engine.transport.requests[0]
        assert ":generateContent?key=" in request.url
        prompt = request.body["contents"][0]["parts"][0]["text"]
        assert "from English to Spanish" in prompt
        assert prompt.rstrip().endswith("Hello")

    @pytest.mark.asyncio
    async def test_auto_source_language(self, make_engine):
        engine = make_engine(gemini_reply("Hola"), **{PREF_GEMINI_API_KEY: GEMINI_KEY})
        assert await engine.translate("Hello", "auto", "es") == "Hola"
        prompt = engine.transport.requests[0].body["contents"][0]["parts"][0]["text"]
        assert prompt.startswith("Translate the following text to Spanish.")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t", "42", "!!! ...", "→ 100%"])
    async def test_untranslatable_input_makes_no_call(self, make_engine, text):
        engine = make_engine(**{PREF_GEMINI_API_KEY: GEMINI_KEY})
        assert await engine.translate(text, "en", "es") == text
        assert engine.transport.calls == 0

    @pytest.mark.asyncio
    async def test_openai_dispatch(self, make_engine):
        engine = make_engine(
            openai_reply("Hola"),
            **{PREF_DEFAULT_ENGINE: "openai", PREF_OPENAI_API_KEY: OPENAI_KEY},
        )
        assert await engine.translate("Hello", "en", "es") == "Hola"
        assert engine.transport.requests[0].headers["Authorization"] == f"Bearer {OPENAI_KEY}"

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, make_engine, sleep):
        engine = make_engine(_server_error(), gemini_reply("Hola"), **{PREF_GEMINI_API_KEY: GEMINI_KEY})
        assert await engine.translate("Hello", "en", "es") == "Hola"
        assert engine.transport.calls == 2
        assert sleep.delays == [1.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, make_engine, sleep):
        engine = make_engine(
            _server_error(), _server_error(), _server_error(), **{PREF_GEMINI_API_KEY: GEMINI_KEY}
        )
        with pytest.raises(TranslationError) as info:
            await engine.translate("Hello", "en", "es")
        assert info.value.kind is ErrorKind.SERVER
        assert engine.transport.calls == 3
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_auth_failure_is_single_attempt(self, make_engine):
        engine = make_engine(
            json_response({"error": {"code": 403, "message": "denied"}}, 403),
            **{PREF_GEMINI_API_KEY: GEMINI_KEY},
        )
        with pytest.raises(TranslationError) as info:
            await engine.translate("Hello", "en", "es")
        assert info.value.message == "Gemini API Error (401/403): Invalid API key or access denied"
        assert engine.transport.calls == 1

    @pytest.mark.asyncio
    async def test_placeholders_survive(self, make_engine):
        engine = make_engine(gemini_reply("Hola __PH0__, tienes __PH1__ mensajes"), **{PREF_GEMINI_API_KEY: GEMINI_KEY})
        result = await engine.translate("Hello %s, you have %1$d messages", "en", "es")
        assert result == "Hola %s, tienes %1$d mensajes"
        prompt = engine.transport.requests[0].body["contents"][0]["parts"][0]["text"]
        assert "%s" not in prompt.splitlines()[-1]

    @pytest.mark.asyncio
    async def test_dropped_placeholder_returns_original(self, make_engine):
        engine = make_engine(gemini_reply("Hola"), **{PREF_GEMINI_API_KEY: GEMINI_KEY})
        assert await engine.translate("Hello {name}", "en", "es") == "Hello {name}"

    @pytest.mark.asyncio
    async def test_close_closes_transport(self, make_engine):
        engine = make_engine(**{PREF_GEMINI_API_KEY: GEMINI_KEY})
        await engine.close()
        assert engine.transport.closed


class TestClaudeModelFallback:
    CATALOG = json_response(
        {
            "data": [
                {"id": "claude-3-haiku-20240307", "display_name": "Claude 3 Haiku"},
                {"id": "claude-sonnet-4-5-20250929", "display_name": "Claude Sonnet 4.5"},
            ]
        }
    )

    @pytest.mark.asyncio
    async def test_not_found_switches_model_and_persists(self, make_engine, store, notices):
        engine = make_engine(
            claude_not_found("claude-3-5-sonnet-20241022"),
            self.CATALOG,
            claude_reply("Hola"),
            **{PREF_DEFAULT_ENGINE: "claude", PREF_CLAUDE_API_KEY: CLAUDE_KEY},
        )
        assert await engine.translate("Hello", "en", "es") == "Hola"

        assert engine.transport.calls == 3
        assert engine.transport.requests[1].method == "GET"
        assert engine.transport.requests[2].body["model"] == "claude-sonnet-4-5-20250929"
        assert store.get(PREF_CLAUDE_MODEL) == "claude-sonnet-4-5-20250929"
        assert engine.session().config.model == "claude-sonnet-4-5-20250929"
        assert any("auto-selected claude-sonnet-4-5-20250929" in notice for notice in notices)
        # the fetched catalog is cached for later listings
        assert [m.id for m in engine.catalog.load_cache(ProviderKind.CLAUDE)][0] == "claude-sonnet-4-5-20250929"

    @pytest.mark.asyncio
    async def test_second_not_found_is_fatal(self, make_engine):
        engine = make_engine(
            claude_not_found("claude-3-5-sonnet-20241022"),
            self.CATALOG,
            claude_not_found("claude-sonnet-4-5-20250929"),
            **{PREF_DEFAULT_ENGINE: "claude", PREF_CLAUDE_API_KEY: CLAUDE_KEY},
        )
        with pytest.raises(TranslationError) as info:
            await engine.translate("Hello", "en", "es")
        assert info.value.kind is ErrorKind.MODEL_NOT_FOUND
        assert "Check the claude model settings" in info.value.message
        assert engine.transport.calls == 3

    @pytest.mark.asyncio
    async def test_catalog_failure_uses_builtin_fallback(self, make_engine, store):
        engine = make_engine(
            claude_not_found("claude-3-5-sonnet-20241022"),
            json_response({"error": {"type": "authentication_error", "message": "bad"}}, 401),
            claude_reply("Hola"),
            **{PREF_DEFAULT_ENGINE: "claude", PREF_CLAUDE_API_KEY: CLAUDE_KEY},
        )
        assert await engine.translate("Hello", "en", "es") == "Hola"
        assert store.get(PREF_CLAUDE_MODEL) == "claude-3-sonnet-20240229"

    @pytest.mark.asyncio
    async def test_no_switch_when_best_model_is_current(self, make_engine):
        engine = make_engine(
            claude_not_found("claude-sonnet-4-5-20250929"),
            self.CATALOG,
            **{
                PREF_DEFAULT_ENGINE: "claude",
                PREF_CLAUDE_API_KEY: CLAUDE_KEY,
                PREF_CLAUDE_MODEL: "claude-sonnet-4-5-20250929",
            },
        )
        with pytest.raises(TranslationError) as info:
            await engine.translate("Hello", "en", "es")
        assert info.value.kind is ErrorKind.MODEL_NOT_FOUND
        assert engine.transport.calls == 2

    @pytest.mark.asyncio
    async def test_gemini_not_found_is_retried_without_switch(self, make_engine, sleep):
        not_found = {"error": {"code": 404, "message": "models/gemini-0 is not found", "status": "NOT_FOUND"}}
        engine = make_engine(
            json_response(not_found, 404),
            json_response(not_found, 404),
            json_response(not_found, 404),
            **{PREF_GEMINI_API_KEY: GEMINI_KEY},
        )
        with pytest.raises(TranslationError) as info:
            await engine.translate("Hello", "en", "es")
        assert info.value.kind is ErrorKind.UNKNOWN
        assert "Check the" not in info.value.message
        assert engine.transport.calls == 3
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_gemini_not_found_then_success(self, make_engine):
        engine = make_engine(
            json_response({"error": {"code": 404, "message": "models/gemini-x is not found"}}, 404),
            gemini_reply("Hola"),
            **{PREF_GEMINI_API_KEY: GEMINI_KEY},
        )
        assert await engine.translate("Hello", "en", "es") == "Hola"
        assert engine.transport.calls == 2

    @pytest.mark.asyncio
    async def test_openai_not_found_then_success(self, make_engine, store):
        engine = make_engine(
            json_response(
                {"error": {"message": "The model `gpt-x` does not exist", "type": "invalid_request_error"}}, 404
            ),
            openai_reply("Hola"),
            **{PREF_DEFAULT_ENGINE: "openai", PREF_OPENAI_API_KEY: OPENAI_KEY},
        )
        assert await engine.translate("Hello", "en", "es") == "Hola"
        assert engine.transport.calls == 2
        assert store.get(PREF_OPENAI_MODEL) is None


class TestTranslateBatch:
    @pytest.mark.asyncio
    async def test_batch_with_duplicates_and_skips(self, make_engine):
        engine = make_engine(gemini_reply("[1] Hola\n[2] Mundo"), **{PREF_GEMINI_API_KEY: GEMINI_KEY})
        progress = []
        result = await engine.translate_batch(
            ["Hello", "", "World", "Hello", "42"],
            "en",
            "es",
            progress_cb=lambda done, total: progress.append((done, total)),
        )
        assert result == ["Hola", "", "Mundo", "Hola", "42"]
        assert engine.transport.calls == 1
        prompt = engine.transport.requests[0].body["contents"][0]["parts"][0]["text"]
        assert "[1] Hello" in prompt and "[2] World" in prompt
        assert progress == [(2, 5), (5, 5)]

    @pytest.mark.asyncio
    async def test_nothing_to_translate(self, make_engine):
        engine = make_engine()
        assert await engine.translate_batch(["", "123"], "en", "es") == ["", "123"]
        assert engine.transport.calls == 0

    @pytest.mark.asyncio
    async def test_missing_items_keep_original(self, make_engine):
        engine = make_engine(gemini_reply("[1] Hola"), **{PREF_GEMINI_API_KEY: GEMINI_KEY})
        assert await engine.translate_batch(["Hello", "World"], "en", "es") == ["Hola", "World"]

    @pytest.mark.asyncio
    async def test_failed_batch_falls_back_to_single_calls(self, make_engine):
        engine = make_engine(
            _server_error(),
            gemini_reply("Hola"),
            _server_error(),
            **{PREF_GEMINI_API_KEY: GEMINI_KEY, PREF_MAX_RETRIES: "0"},
        )
        result = await engine.translate_batch(["Hello", "World"], "en", "es")
        assert result == ["Hola", "World"]
        assert engine.transport.calls == 3

    @pytest.mark.asyncio
    async def test_auth_failure_propagates(self, make_engine):
        engine = make_engine(
            json_response({"error": {"code": 401, "message": "bad key"}}, 401),
            **{PREF_GEMINI_API_KEY: GEMINI_KEY},
        )
        with pytest.raises(TranslationError) as info:
            await engine.translate_batch(["Hello", "World"], "en", "es")
        assert info.value.kind is ErrorKind.AUTH

    @pytest.mark.asyncio
    async def test_batch_respects_size_limit(self, make_engine, settings):
        settings.translator.batch_size = 2
        engine = make_engine(
            gemini_reply("[1] Uno\n[2] Dos"),
            gemini_reply("Tres"),
            **{PREF_GEMINI_API_KEY: GEMINI_KEY},
        )
        assert await engine.translate_batch(["One", "Two", "Three"], "en", "es") == ["Uno", "Dos", "Tres"]
        assert engine.transport.calls == 2

    @pytest.mark.asyncio
    async def test_batch_restores_placeholders(self, make_engine):
        engine = make_engine(gemini_reply("[1] Hola __PH0__\n[2] Adiós"), **{PREF_GEMINI_API_KEY: GEMINI_KEY})
        assert await engine.translate_batch(["Hi %s", "Bye"], "en", "es") == ["Hola %s", "Adiós"]
