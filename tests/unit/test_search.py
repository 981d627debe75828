"""
Tests for policy search.
"""

import pytest

from controlroom.services.policy_service import PolicyService
from controlroom.services.search import SearchService

from tests.unit.factories import policy_fields


@pytest.fixture
def search_service(db_session):
    return SearchService(db_session)


@pytest.fixture
def policy_service(db_session):
    return PolicyService(db_session)


class TestSearchPolicies:

    @pytest.mark.asyncio
    async def test_blank_query_returns_empty_page(self, search_service, policy_service, users):
        await policy_service.create_policy(policy_fields(), users["admin"], publish=True)

        result = await search_service.search_policies("   ", users["admin"])

        assert result.items == []
        assert result.total_count == 0

    @pytest.mark.asyncio
    async def test_matches_fields_case_insensitively(self, search_service, policy_service, users):
        by_title = await policy_service.create_policy(
            policy_fields(title="Forklift Safety"), users["admin"], publish=True
        )
        by_content = await policy_service.create_policy(
            policy_fields(title="Warehouse", content="Always wear a FORKLIFT harness."),
            users["admin"],
            publish=True,
        )
        by_tag = await policy_service.create_policy(
            policy_fields(title="Equipment", tags=["forklift"]), users["admin"], publish=True
        )
        await policy_service.create_policy(
            policy_fields(title="Unrelated"), users["admin"], publish=True
        )

        result = await search_service.search_policies("forklift", users["associate"])

        assert {p.id for p in result.items} == {by_title.id, by_content.id, by_tag.id}

    @pytest.mark.asyncio
    async def test_matches_category(self, search_service, policy_service, users):
        policy = await policy_service.create_policy(
            policy_fields(category="Quality"), users["admin"], publish=True
        )

        result = await search_service.search_policies("quality", users["admin"])

        assert [p.id for p in result.items] == [policy.id]

    @pytest.mark.asyncio
    async def test_wildcards_are_literal(self, search_service, policy_service, users):
        await policy_service.create_policy(policy_fields(), users["admin"], publish=True)

        result = await search_service.search_policies("%", users["admin"])

        assert result.items == []

    @pytest.mark.asyncio
    async def test_respects_visibility(self, search_service, policy_service, users):
        draft = await policy_service.create_policy(
            policy_fields(title="Secret draft"),
            users["manager"],
            assigned_users=[users["admin"].id],
        )
        crew = await policy_service.create_policy(
            policy_fields(title="Secret crew memo", organization="mertzcrew"),
            users["admin"],
            publish=True,
        )

        associate = await search_service.search_policies("secret", users["associate"])
        outsider = await search_service.search_policies("secret", users["outsider"])
        manager = await search_service.search_policies("secret", users["manager"])

        assert [p.id for p in associate.items] == [crew.id]
        assert outsider.items == []
        assert {p.id for p in manager.items} == {draft.id, crew.id}

    @pytest.mark.asyncio
    async def test_paginates(self, search_service, policy_service, users):
        for i in range(5):
            await policy_service.create_policy(
                policy_fields(title=f"Handbook part {i}"), users["admin"], publish=True
            )

        result = await search_service.search_policies("handbook", users["admin"], page=2, limit=2)

        assert len(result.items) == 2
        assert result.total_count == 5
        assert result.total_pages == 3

    @pytest.mark.asyncio
    async def test_matches_non_ascii_tag(self, search_service, policy_service, users):
        policy = await policy_service.create_policy(
            policy_fields(title="Badge access", tags=["sécurité", "badges"]),
            users["admin"],
            publish=True,
        )

        result = await search_service.search_policies("sécurité", users["associate"])

        assert [p.id for p in result.items] == [policy.id]

    @pytest.mark.asyncio
    async def test_json_syntax_does_not_match_tags(self, search_service, policy_service, users):
        await policy_service.create_policy(
            policy_fields(tags=["x"]), users["admin"], publish=True
        )
        await policy_service.create_policy(
            policy_fields(title="Untagged", tags=[]), users["admin"], publish=True
        )

        for query in ("[", "]", '"', ","):
            result = await search_service.search_policies(query, users["admin"])
            assert result.items == [], query
            assert result.total_count == 0

    @pytest.mark.asyncio
    async def test_tag_match_is_per_element(self, search_service, policy_service, users):
        await policy_service.create_policy(
            policy_fields(tags=["remote", "hr"]), users["admin"], publish=True
        )

        result = await search_service.search_policies("remote, hr", users["admin"])

        assert result.items == []

    @pytest.mark.asyncio
    async def test_assigned_user_finds_draft(self, search_service, policy_service, users):
        draft = await policy_service.create_policy(
            policy_fields(title="Overtime draft"),
            users["associate"],
            assigned_users=[users["admin"].id],
        )

        admin_reviewer = await search_service.search_policies("overtime", users["admin"])
        colleague = await search_service.search_policies("overtime", users["manager"])

        assert [p.id for p in admin_reviewer.items] == [draft.id]
        assert colleague.items == []
