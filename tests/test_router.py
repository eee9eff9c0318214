"""Tests for the Capability Router and the default providers."""

import asyncio

import pytest

from fakes import RecordingModelService
from parallel_you.capabilities.providers import default_providers
from parallel_you.capabilities.router import CapabilityRouter
from parallel_you.errors import CapabilityUnavailable
from parallel_you.models.capability import (
    AutomaticToolPolicy,
    CapabilityProvider,
    ConversationTurn,
    ForcedToolPolicy,
    Intent,
    TurnRole,
)

TURNS = [ConversationTurn(role=TurnRole.USER, content="Tell me about this universe")]


class TestCapabilityRouter:
    def setup_method(self):
        self.model = RecordingModelService()
        self.router = CapabilityRouter(self.model, default_providers())

    def test_auto_select_offers_every_provider(self):
        response = asyncio.run(self.router.invoke(Intent.AUTO_SELECT, TURNS))

        assert response.content == "reply 1"
        call = self.model.calls[0]
        assert isinstance(call["policy"], AutomaticToolPolicy)
        assert set(call["tools"]) == {
            "generate-universe",
            "generate-timeline",
            "analyze-personality",
            "assess-butterfly-effect",
            "suggest-divergence-points",
        }

    @pytest.mark.parametrize("intent", [
        Intent.GENERATE_UNIVERSE,
        Intent.GENERATE_TIMELINE,
        Intent.ANALYZE_PERSONALITY,
    ])
    def test_named_intent_forces_provider(self, intent):
        asyncio.run(self.router.invoke(intent, TURNS))

        policy = self.model.calls[0]["policy"]
        assert isinstance(policy, ForcedToolPolicy)
        assert policy.capability == intent.value

    def test_unregistered_provider_is_unavailable(self):
        router = CapabilityRouter(
            self.model,
            [p for p in default_providers() if p.name != "generate-timeline"],
        )

        with pytest.raises(CapabilityUnavailable) as exc_info:
            asyncio.run(router.invoke(Intent.GENERATE_TIMELINE, TURNS))
        assert exc_info.value.capability == "generate-timeline"
        # The model is never called
        assert self.model.calls == []

    def test_auto_select_with_no_providers(self):
        router = CapabilityRouter(self.model)
        asyncio.run(router.invoke(Intent.AUTO_SELECT, TURNS))
        assert self.model.calls[0]["tools"] == []

    def test_register_replaces_by_name(self):
        replacement = CapabilityProvider(
            name="generate-timeline",
            description="Custom timeline",
            handler=lambda args: {"custom": True},
        )
        self.router.register(replacement)

        assert self.router.get("generate-timeline").description == "Custom timeline"
        assert len(self.router.providers()) == 5

    def test_response_returned_uninterpreted(self):
        response = asyncio.run(self.router.invoke(Intent.ANALYZE_PERSONALITY, TURNS))
        assert response.tool_calls == []
        assert response.model == "recording"


class TestDefaultProviders:
    def setup_method(self):
        self.providers = {p.name: p for p in default_providers()}

    def test_provider_schemas_are_objects(self):
        for provider in self.providers.values():
            assert provider.parameters["type"] == "object"
            assert provider.description

    def test_generate_universe_fills_every_domain(self):
        result = self.providers["generate-universe"].invoke({
            "divergence_point": "Became a chef",
            "changes": {"career": "Head chef in Lyon"},
        })
        assert result["domains"]["career"] == "Head chef in Lyon"
        assert result["domains"]["health"] == "unchanged"
        assert result["universe_name"] == "The world where Became a chef"

    def test_generate_timeline_orders_events(self):
        result = self.providers["generate-timeline"].invoke({
            "events": [
                {"year": 2020, "event": "Opened restaurant"},
                "Undated rumor",
                {"year": 2012, "event": "Culinary school", "differs_from_base": False},
            ],
        })
        assert [e["event"] for e in result["events"]] == [
            "Culinary school", "Opened restaurant", "Undated rumor",
        ]
        assert result["divergence_count"] == 2

    def test_analyze_personality_clamps_scores(self):
        result = self.providers["analyze-personality"].invoke({
            "traits": {"openness": 1.4, "neuroticism": -0.2, "grit": "n/a"},
            "values": "craft",
        })
        assert result["traits"] == {"openness": 1.0, "neuroticism": 0.0}
        assert result["values"] == ["craft"]
        assert result["dominant_trait"] == "openness"

    def test_handlers_accept_empty_arguments(self):
        for provider in self.providers.values():
            assert isinstance(provider.invoke({}), dict)

    def test_suggest_divergence_points_limit(self):
        result = self.providers["suggest-divergence-points"].invoke({
            "candidates": ["a", "b", "c"], "limit": 2,
        })
        assert result["divergence_points"] == ["a", "b"]

    def test_generate_timeline_coerces_years(self):
        result = self.providers["generate-timeline"].invoke({
            "events": [
                {"year": "2019", "event": "Moved"},
                {"year": 2011, "event": "Graduated"},
                {"year": "someday", "event": "Retire"},
            ],
        })
        assert [e["year"] for e in result["events"]] == [2011, 2019, None]

    def test_non_mapping_changes_and_traits_are_ignored(self):
        universe = self.providers["generate-universe"].invoke({"changes": ["career"]})
        assert set(universe["domains"].values()) == {"unchanged"}

        personality = self.providers["analyze-personality"].invoke({"traits": ["kind"]})
        assert personality["traits"] == {}
        assert personality["dominant_trait"] is None

    @pytest.mark.parametrize("limit,expected", [("2", 2), ("many", 5), (0, 5)])
    def test_suggest_divergence_points_coerces_limit(self, limit, expected):
        result = self.providers["suggest-divergence-points"].invoke({
            "candidates": list("abcdefg"), "limit": limit,
        })
        assert len(result["divergence_points"]) == expected
