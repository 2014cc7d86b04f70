import pytest

from legal_clarify.domain.models import DocumentAnalysis
from legal_clarify.llm_integration.prompt_loader import load_prompt_template
from legal_clarify.services.prompt_builder import (
    TRUNCATION_MARKER,
    build_analysis_prompt,
    build_chat_system_prompt,
    build_grounding_context,
    truncate_document_text,
)

from conftest import VALID_ANALYSIS


class TestTruncation:

    @pytest.mark.parametrize("length", [0, 1, 7999, 8000])
    def test_short_text_is_unchanged(self, length):
        text = "a" * length
        assert truncate_document_text(text) == text

    def test_long_text_is_cut_to_prefix_plus_marker(self):
        text = "".join(chr(ord("a") + i % 26) for i in range(12000))
        result = truncate_document_text(text)

        assert len(result) == 8000 + len(TRUNCATION_MARKER)
        assert result.endswith(TRUNCATION_MARKER)
        assert text.startswith(result[:8000])

    def test_counts_code_points_not_bytes(self):
        text = "é" * 8000
        assert truncate_document_text(text) == text

    def test_custom_limit(self):
        assert truncate_document_text("abcdef", max_chars=3) == "abc" + TRUNCATION_MARKER


class TestAnalysisPrompt:

    def test_user_prompt_embeds_type_text_and_checklist(self):
        prompt = build_analysis_prompt("Tenant pays rent monthly.", "Rental Agreement")

        assert "Read this Rental Agreement" in prompt.user
        assert "Tenant pays rent monthly." in prompt.user
        for angle in ("obligations", "rights", "key terms", "termination", "before signing"):
            assert angle in prompt.user

    @pytest.mark.parametrize("document_type", [None, "", "   "])
    def test_document_type_defaults_to_document(self, document_type):
        prompt = build_analysis_prompt("Some text", document_type)
        assert "Read this document and explain" in prompt.user

    def test_system_prompt_focuses_on_content(self):
        prompt = build_analysis_prompt("Some text")
        assert "CONTENT and TERMS" in prompt.system
        assert '"summary"' not in prompt.system

    def test_free_text_variant_embeds_json_example(self):
        prompt = build_analysis_prompt("Some text", free_text=True)
        for field in ("summary", "keyPoints", "importantTerms", "simpleExplanation", "thingsToKnow", "warnings"):
            assert f'"{field}"' in prompt.system

    def test_long_document_is_truncated_in_prompt(self):
        prompt = build_analysis_prompt("x" * 9000)
        assert "x" * 8000 + TRUNCATION_MARKER in prompt.user
        assert "x" * 8001 not in prompt.user

    def test_angle_brackets_in_document_survive(self):
        text = "Clause <document_type> and <b>bold</b> stay as written."
        prompt = build_analysis_prompt(text, "NDA")
        assert text in prompt.user
        assert "Read this NDA" in prompt.user


class TestChatPrompts:

    def test_grounding_context_format(self):
        analysis = DocumentAnalysis.model_validate(VALID_ANALYSIS)
        context = build_grounding_context("FULL TEXT", analysis)

        assert context == (
            "Full Document Text:\nFULL TEXT\n\n"
            "Document Analysis:\n"
            "Summary: You rent the flat for a year and pay monthly.\n"
            "Key Points: Rent is due on the 1st, Late fees apply after the 5th\n"
            "Warnings: Leaving early costs you the deposit"
        )

    def test_system_prompt_includes_context_when_given(self):
        prompt = build_chat_system_prompt("Full Document Text:\nABC")
        assert "Here's the analysis context:\nFull Document Text:\nABC" in prompt
        assert "consulting a lawyer" in prompt

    def test_system_prompt_without_context(self):
        prompt = build_chat_system_prompt(None)
        assert "Context:" not in prompt
        assert prompt.startswith("You are a helpful legal assistant")


class TestPromptLoader:

    def test_missing_placeholder_is_reported(self):
        with pytest.raises(ValueError, match="document_text"):
            load_prompt_template("analysis_user.txt", {"document_type": "NDA"})

    def test_unknown_template(self):
        with pytest.raises(FileNotFoundError):
            load_prompt_template("does_not_exist.txt", {})

    def test_custom_base_path(self, tmp_path):
        (tmp_path / "greeting.txt").write_text("Hello <name>, see <name>.", encoding="utf-8")
        assert load_prompt_template("greeting.txt", {"name": "Ana"}, tmp_path) == "Hello Ana, see Ana."
