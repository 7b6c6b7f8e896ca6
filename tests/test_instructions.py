"""Unit tests for CREATE_CONTENT block extraction and parsing."""
from gateway.instructions import extract_block, parse_instructions

BLOCK = """Sure, here's the plan.
===CREATE_CONTENT===
content_type: reel
platform: instagram
hook: "Stop scrolling"
hashtags: ["wraps", "fleet"]
style: {"tone": "bold"}
overlays:
- Before / after
- Call today
===END_CREATE_CONTENT===
Anything else?"""


class TestExtractBlock:
    def test_extracts_marked_block_only(self):
        block = extract_block(BLOCK)
        assert block.startswith("===CREATE_CONTENT===")
        assert block.endswith("===END_CREATE_CONTENT===")
        assert "Anything else?" not in block

    def test_no_start_marker_returns_none(self):
        assert extract_block("content_type: reel") is None

    def test_missing_end_marker_runs_to_end(self):
        block = extract_block("intro\n===CREATE_CONTENT===\nplatform: tiktok")
        assert block == "===CREATE_CONTENT===\nplatform: tiktok"


class TestParseInstructions:
    def test_parses_scalars_quotes_json_and_bullets(self):
        parsed = parse_instructions(extract_block(BLOCK))
        assert parsed.fields == {
            "content_type": "reel",
            "platform": "instagram",
            "hook": "Stop scrolling",
            "hashtags": ["wraps", "fleet"],
            "style": {"tone": "bold"},
            "overlays": ["Before / after", "Call today"],
        }
        assert parsed.dropped_lines == []

    def test_unknown_keys_are_kept(self):
        parsed = parse_instructions("music_vibe: upbeat\nfoo: bar")
        assert parsed.fields == {"music_vibe": "upbeat", "foo": "bar"}

    def test_malformed_literal_stays_a_string(self):
        parsed = parse_instructions("hashtags: [wraps, fleet")
        assert parsed.fields["hashtags"] == "[wraps, fleet"
        parsed = parse_instructions("hashtags: [wraps, fleet]")
        assert parsed.fields["hashtags"] == "[wraps, fleet]"

    def test_colon_less_lines_are_dropped_and_reported(self):
        parsed = parse_instructions("platform: instagram\nmake it pop\ncontent_type: reel")
        assert parsed.fields == {"platform": "instagram", "content_type": "reel"}
        assert parsed.dropped_lines == ["make it pop"]

    def test_bullet_under_scalar_turns_it_into_a_list(self):
        parsed = parse_instructions("cta: Call today\n- Visit the shop")
        assert parsed.fields["cta"] == ["Call today", "Visit the shop"]

    def test_bullet_before_any_key_is_dropped(self):
        parsed = parse_instructions("- orphan\nplatform: instagram")
        assert parsed.fields == {"platform": "instagram"}
        assert parsed.dropped_lines == ["- orphan"]

    def test_value_keeps_later_colons(self):
        parsed = parse_instructions("link: https://weprintwraps.com/gallery")
        assert parsed.fields["link"] == "https://weprintwraps.com/gallery"
