"""QuestionnaireCatalog loading, lookup and load-time validation tests.

Uses the dental intake fixture for the happy path and small inline payloads
for the structural checks (page numbering, order_index, dangling logic).
"""

import asyncio

import pytest

from helpers.fakes import FakeCatalogClient
from questionnaire_engine.catalog import QuestionnaireCatalog, load_catalog_yaml
from questionnaire_engine.errors import CatalogError


def _payload(pages, **template):
    return {"id": "t1", "name": "Inline", **template}, pages


def _page(number, *questions, **extra):
    return {"id": f"p{number}", "page_number": number, "questions": list(questions), **extra}


def _q(qid, order=0, **extra):
    return {"id": qid, "question_type": "text", "order_index": order, **extra}


# =====================================================================
# YAML fixture
# =====================================================================


class TestLoadCatalogYaml:

    def test_template_and_pages(self, catalog):
        assert catalog.template.id == "dental-intake"
        assert catalog.template.total_pages == 3
        assert catalog.total_pages == 3
        assert [p.page_number for p in catalog.pages] == [1, 2, 3]

    def test_ids_filled_in(self, catalog):
        page = catalog.get_page(2)
        assert page.id == "dental-intake-p2"
        assert page.template_id == "dental-intake"
        q = catalog.get_question("q_reason")
        assert q.page_id == "dental-intake-p2"
        assert q.template_id == "dental-intake"

    def test_rules_and_logic_parsed(self, catalog):
        pain = catalog.get_question("q_pain_level")
        assert pain.validation_rules.max == 10
        assert pain.conditional_logic.show_if[0].operator == "equals"
        treatments = catalog.get_question("q_treatments")
        assert treatments.validation_rules.max_files == 2

    def test_fixture_is_clean(self, catalog):
        assert catalog.validate() == [], "Fixture catalog should have no issues"

    def test_missing_template_key(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("pages: []\n", encoding="utf-8")
        with pytest.raises(CatalogError, match="'template' key"):
            load_catalog_yaml(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_catalog_yaml(tmp_path / "nope.yaml")


# =====================================================================
# Lookup
# =====================================================================


class TestLookup:

    def test_get_page_missing(self, catalog):
        with pytest.raises(KeyError):
            catalog.get_page(4)

    def test_get_question_missing(self, catalog):
        with pytest.raises(KeyError):
            catalog.get_question("q_nope")

    def test_page_of(self, catalog):
        assert catalog.page_of("q_email") == 1
        assert catalog.page_of("q_notes") == 3
        assert catalog.page_of("q_nope") is None

    def test_all_questions_in_order(self, catalog):
        ids = [q.id for q in catalog.all_questions()]
        assert ids == [
            "q_name", "q_email", "q_phone",
            "q_reason", "q_pain_level", "q_treatments",
            "q_notes",
        ]

    def test_pages_sorted_by_number(self):
        catalog = QuestionnaireCatalog.from_payload(*_payload([_page(2), _page(1)]))
        assert [p.page_number for p in catalog.pages] == [1, 2]


# =====================================================================
# Structural validation
# =====================================================================


class TestValidate:

    def test_page_gap(self):
        catalog = QuestionnaireCatalog.from_payload(*_payload([_page(1), _page(3)]))
        issues = catalog.validate()
        assert any("not contiguous" in i for i in issues), issues

    def test_total_pages_mismatch(self):
        catalog = QuestionnaireCatalog.from_payload(*_payload([_page(1)], total_pages=2))
        assert catalog.validate() == ["Template declares 2 pages but has 1"]

    def test_duplicate_order_index(self):
        catalog = QuestionnaireCatalog.from_payload(
            *_payload([_page(1, _q("a", 1), _q("b", 1))])
        )
        assert catalog.validate() == ["Page 1: duplicate order_index 1 (b)"]

    def test_dangling_condition(self):
        q = _q("a", 1, conditional_logic={"show_if": [
            {"question_id": "ghost", "operator": "equals", "value": "x"},
        ]})
        catalog = QuestionnaireCatalog.from_payload(*_payload([_page(1, q)]))
        assert catalog.validate() == [
            'Question a: show_if condition 1: Question ID "ghost" does not exist'
        ]

    def test_condition_across_pages_is_valid(self):
        later = _q("b", 1, conditional_logic={"show_if": [
            {"question_id": "a", "operator": "is_not_empty"},
        ]})
        catalog = QuestionnaireCatalog.from_payload(
            *_payload([_page(1, _q("a", 1)), _page(2, later)])
        )
        assert catalog.validate() == []

    def test_invalid_payload(self):
        with pytest.raises(CatalogError, match="Invalid catalog payload"):
            QuestionnaireCatalog.from_payload(*_payload([_page(0)]))


# =====================================================================
# Fetch through a CatalogClient
# =====================================================================


class _SlowCatalogClient(FakeCatalogClient):
    async def get_pages(self, template_id):
        await asyncio.sleep(1)
        return await super().get_pages(template_id)


class TestFetch:

    @pytest.mark.asyncio
    async def test_fetch(self, catalog_client):
        catalog = await QuestionnaireCatalog.fetch(catalog_client, "dental-intake")
        assert catalog.total_pages == 3
        assert catalog.get_question("q_email").question_type == "email"

    @pytest.mark.asyncio
    async def test_unknown_template(self, catalog_client):
        with pytest.raises(CatalogError, match="not found"):
            await QuestionnaireCatalog.fetch(catalog_client, "other")

    @pytest.mark.asyncio
    async def test_network_failure_becomes_catalog_error(self, catalog_client):
        catalog_client.fail = True
        with pytest.raises(CatalogError, match="Could not load"):
            await QuestionnaireCatalog.fetch(catalog_client, "dental-intake")

    @pytest.mark.asyncio
    async def test_inactive_template(self, catalog):
        catalog.template = catalog.template.model_copy(update={"is_active": False})
        with pytest.raises(CatalogError, match="not active"):
            await QuestionnaireCatalog.fetch(FakeCatalogClient(catalog), "dental-intake")

    @pytest.mark.asyncio
    async def test_timeout(self, catalog):
        client = _SlowCatalogClient(catalog)
        with pytest.raises(CatalogError, match="Timed out"):
            await QuestionnaireCatalog.fetch(client, "dental-intake", timeout=0.01)

    @pytest.mark.asyncio
    async def test_page_gap_is_rejected(self):
        catalog = QuestionnaireCatalog.from_payload(*_payload([_page(1), _page(3)]))
        with pytest.raises(CatalogError, match="not contiguous"):
            await QuestionnaireCatalog.fetch(FakeCatalogClient(catalog), "t1")

    @pytest.mark.asyncio
    async def test_template_without_pages_is_rejected(self):
        catalog = QuestionnaireCatalog.from_payload(*_payload([]))
        with pytest.raises(CatalogError, match="no pages"):
            await QuestionnaireCatalog.fetch(FakeCatalogClient(catalog), "t1")
