"""Tests for the build-pipeline preprocessor adapter."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from escape_content.config import Settings
from escape_content.highlight import PygmentsHighlighter
from escape_content.preprocess import Options, matches_extension, process
from escape_content.scanner import ParseError

DOC = "<pre escape-content>{x}</pre>"


class TestMatchesExtension:
    def test_suffix_match(self) -> None:
        assert matches_extension("src/lib/Code.svelte", (".svelte",))
        assert matches_extension("App.test.svelte", (".test.svelte",))

    def test_non_matching(self) -> None:
        assert not matches_extension("README.md", (".svelte",))
        assert not matches_extension("dir.svelte/notes.txt", (".svelte",))

    def test_full_extension_starts_at_first_dot(self) -> None:
        """``App.test.svelte`` has the extension ``.test.svelte``."""
        assert not matches_extension("App.test.svelte", (".svelte",))
        assert not matches_extension("src/App.stories.svelte", (".svelte",))


class TestOptions:
    def test_defaults(self) -> None:
        options = Options()
        assert options.tag == "escape-content"
        assert options.extensions == (".svelte",)
        assert options.highlighter is None

    def test_empty_tag_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Options(tag="  ")

    def test_from_settings_without_highlighting(self) -> None:
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
            marker_attribute="verbatim",
        )
        options = Options.from_settings(settings)
        assert options.tag == "verbatim"
        assert options.highlighter is None

    def test_from_settings_with_highlighting(self) -> None:
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
            highlight={"enabled": True},
        )
        options = Options.from_settings(settings)
        assert isinstance(options.highlighter, PygmentsHighlighter)

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ESCAPE_CONTENT_EXTENSIONS", '[".svx"]')
        assert Options.from_settings().extensions == (".svx",)


class TestMarkup:
    """The async markup hook."""

    @pytest.mark.asyncio
    async def test_matching_file_rewritten(self) -> None:
        processed = await process().markup(DOC, "src/lib/Code.svelte")
        assert processed.code == "<pre>{`\\{x\\}` }</pre>"
        assert processed.map is not None
        assert processed.map.file == "src/lib/Code.svelte"

    @pytest.mark.asyncio
    async def test_other_files_untouched(self) -> None:
        processed = await process().markup(DOC, "README.md")
        assert processed.code == DOC
        assert processed.map is None

    @pytest.mark.asyncio
    async def test_multi_dot_name_untouched(self) -> None:
        processed = await process().markup(DOC, "App.test.svelte")
        assert processed.code == DOC
        assert processed.map is None

    @pytest.mark.asyncio
    async def test_custom_tag_and_extension(self) -> None:
        preprocessor = process(Options(tag="verbatim", extensions=(".vue",)))
        processed = await preprocessor.markup("<pre verbatim>a</pre>", "A.vue")
        assert processed.code == "<pre>{`a` }</pre>"

    @pytest.mark.asyncio
    async def test_async_highlighter(self) -> None:
        async def highlighter(text: str, lang: str) -> str:
            return f"<code>{lang}</code>"

        preprocessor = process(Options(highlighter=highlighter))
        processed = await preprocessor.markup(
            '<pre escape-content lang="ts">a</pre>', "A.svelte"
        )
        assert processed.code == '<pre lang="ts">{@html `<code>ts</code>` }</pre>'

    @pytest.mark.asyncio
    async def test_parse_error_carries_filename(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            await process().markup("<!-- open", "Broken.svelte")
        assert exc_info.value.filename == "Broken.svelte"
