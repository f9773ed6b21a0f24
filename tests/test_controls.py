from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from page_fixtures import dom_page, json_page

from post_discovery.config_schema import AppConfig, SourceConfig, ViewConfig
from post_discovery.controls import DiscoveryController, UIEvent, enhance
from post_discovery.event_log import EventLog
from post_discovery.filter_state import ALL_CATEGORIES, SortKey, default_state
from post_discovery.store import parse_document

_REORDER = AppConfig(source=SourceConfig(kind="dom"), view=ViewConfig(strategy="reorder"))


def _listed_urls(controller: DiscoveryController) -> list[str]:
    return [
        item.get("data-url") or item.find("a")["href"]
        for item in controller.elements.container.find_all("article", recursive=False)
    ]


def _button(controller: DiscoveryController, attr: str, value: str):
    return controller.document.find("button", attrs={attr: value})


def _classes(el) -> list[str]:
    return list(el.get("class") or [])


class TestRegenerateView(unittest.TestCase):
    def setUp(self) -> None:
        controller = enhance(json_page())
        assert controller is not None
        self.c = controller

    def test_initial_render_replaces_placeholder(self) -> None:
        self.assertEqual(self.c.render_count, 1)
        self.assertIsNone(self.c.elements.container.find("p", class_="placeholder"))
        self.assertEqual(_listed_urls(self.c), ["/posts/beta/", "/posts/gamma/", "/posts/alpha/"])
        self.assertEqual(self.c.elements.counter.get_text(), "3")
        self.assertTrue(self.c.elements.badge.has_attr("hidden"))
        self.assertTrue(self.c.elements.no_results.has_attr("hidden"))

    def test_regenerated_cards_carry_display_values(self) -> None:
        card = self.c.elements.container.find("article", attrs={"data-url": "/posts/gamma/"})
        self.assertEqual(card.select_one(".post-title").get_text(), "Gamma")
        self.assertEqual(card["data-categories"], "security|career")
        self.assertEqual(
            [li.get_text() for li in card.select(".post-category")], ["Security", "Career"]
        )
        self.assertEqual(card.select_one("img.post-image")["src"], "/assets/img/gamma.png")

    def test_category_toggle_updates_buttons_and_counter(self) -> None:
        self.c.toggle_category("Security")

        self.assertEqual(_listed_urls(self.c), ["/posts/gamma/", "/posts/alpha/"])
        self.assertEqual(self.c.elements.counter.get_text(), "2/3")
        self.assertIn("active", _classes(_button(self.c, "data-category", "Security")))
        self.assertNotIn("active", _classes(_button(self.c, "data-category", ALL_CATEGORIES)))
        self.assertEqual(_button(self.c, "data-category", "Security")["aria-pressed"], "true")
        self.assertEqual(self.c.elements.badge.get_text(), "1")
        self.assertFalse(self.c.elements.badge.has_attr("hidden"))

    def test_fallback_to_all_reactivates_all_button(self) -> None:
        self.c.toggle_category("Security")
        self.c.toggle_category("Security")

        self.assertEqual(self.c.state.selected_categories, frozenset({ALL_CATEGORIES}))
        self.assertIn("active", _classes(_button(self.c, "data-category", ALL_CATEGORIES)))
        self.assertNotIn("active", _classes(_button(self.c, "data-category", "Security")))
        self.assertEqual(len(_listed_urls(self.c)), 3)

    def test_no_results_state(self) -> None:
        self.c.set_search_query("kubernetes")

        self.assertFalse(self.c.elements.no_results.has_attr("hidden"))
        self.assertEqual(self.c.elements.container.find_all(True), [])
        self.assertEqual(self.c.elements.counter.get_text(), "0/3")

    def test_whitespace_query_is_an_active_filter(self) -> None:
        self.c.set_search_query("   ")

        self.assertEqual(self.c.elements.badge.get_text(), "1")
        self.assertFalse(self.c.elements.badge.has_attr("hidden"))
        self.assertEqual(self.c.elements.search_input["value"], "   ")
        self.assertFalse(self.c.elements.no_results.has_attr("hidden"))

    def test_clear_all_resets_state_and_controls(self) -> None:
        self.c.toggle_category("Security")
        self.c.toggle_tag("aws")
        self.c.set_search_query("python")
        self.c.set_sort_key("title-desc")

        self.c.clear_all()

        self.assertEqual(self.c.state, default_state())
        self.assertEqual(_listed_urls(self.c), ["/posts/beta/", "/posts/gamma/", "/posts/alpha/"])
        self.assertTrue(self.c.elements.badge.has_attr("hidden"))
        self.assertEqual(self.c.elements.badge.get_text(), "0")
        self.assertEqual(self.c.elements.search_input["value"], "")
        self.assertNotIn("active", _classes(_button(self.c, "data-tag", "aws")))
        self.assertIn("active", _classes(_button(self.c, "data-category", ALL_CATEGORIES)))
        selected = [o["value"] for o in self.c.elements.sort_select.find_all("option") if o.has_attr("selected")]
        self.assertEqual(selected, ["newest"])

    def test_each_transition_renders_exactly_once(self) -> None:
        start = self.c.render_count
        self.c.toggle_category("Career")
        self.c.toggle_tag("aws")
        self.c.set_search_query("a")
        self.c.set_sort_key(SortKey.OLDEST)
        self.c.clear_all()
        self.assertEqual(self.c.render_count, start + 5)

    def test_invalid_sort_key_is_ignored(self) -> None:
        start = self.c.render_count
        self.assertIsNone(self.c.set_sort_key("by-mood"))
        self.assertEqual(self.c.render_count, start)
        self.assertIs(self.c.state.sort_key, SortKey.NEWEST)

    def test_counter_always_matches_view(self) -> None:
        for view in (
            self.c.toggle_tag("python"),
            self.c.toggle_tag("aws"),
            self.c.set_search_query("notes"),
            self.c.clear_all(),
        ):
            self.assertEqual(len(_listed_urls(self.c)), view.filtered_count)
            self.assertEqual(self.c.elements.counter.get_text(), view.counter_text())


class TestEventDispatch(unittest.TestCase):
    def setUp(self) -> None:
        controller = enhance(json_page())
        assert controller is not None
        self.c = controller

    def test_click_inside_category_button(self) -> None:
        label = _button(self.c, "data-category", "Career").find("span")
        self.assertTrue(self.c.handle_event(UIEvent("click", label)))
        self.assertEqual(self.c.state.selected_categories, frozenset({"Career"}))

    def test_tag_click_search_input_and_sort_change(self) -> None:
        self.assertTrue(self.c.handle_event(UIEvent("click", _button(self.c, "data-tag", "aws"))))
        self.assertTrue(
            self.c.handle_event(UIEvent("input", self.c.elements.search_input, "gamma"))
        )
        self.assertTrue(
            self.c.handle_event(UIEvent("change", self.c.elements.sort_select, "title-asc"))
        )

        self.assertEqual(self.c.state.selected_tags, frozenset({"aws"}))
        self.assertEqual(self.c.state.search_query, "gamma")
        self.assertIs(self.c.state.sort_key, SortKey.TITLE_ASC)
        self.assertEqual(_listed_urls(self.c), ["/posts/gamma/"])

    def test_clear_button(self) -> None:
        self.c.toggle_tag("aws")
        self.assertTrue(self.c.handle_event(UIEvent("click", self.c.elements.clear_button)))
        self.assertEqual(self.c.state, default_state())

    def test_unknown_target_and_bad_sort_value(self) -> None:
        start = self.c.render_count
        self.assertFalse(self.c.handle_event(UIEvent("click", self.c.elements.counter)))
        self.assertFalse(
            self.c.handle_event(UIEvent("change", self.c.elements.sort_select, "sideways"))
        )
        self.assertEqual(self.c.render_count, start)


class TestReorderView(unittest.TestCase):
    def setUp(self) -> None:
        controller = enhance(dom_page(), _REORDER)
        assert controller is not None
        self.c = controller
        self.nodes = {
            url: self.c.reconciler.node_for(url)
            for url in ("/posts/alpha/", "/posts/beta/", "/posts/gamma/")
        }

    def test_initial_render_reorders_existing_nodes(self) -> None:
        children = self.c.elements.container.find_all("article", recursive=False)
        self.assertEqual(
            [id(n) for n in children],
            [id(self.nodes[u]) for u in ("/posts/beta/", "/posts/gamma/", "/posts/alpha/")],
        )

    def test_filtered_nodes_are_detached_and_restored(self) -> None:
        beta = self.nodes["/posts/beta/"]

        self.c.toggle_category("Security")
        self.assertIsNone(beta.parent)
        self.assertEqual(_listed_urls(self.c), ["/posts/gamma/", "/posts/alpha/"])

        self.c.clear_all()
        self.assertIs(beta.parent, self.c.elements.container)
        self.assertEqual(_listed_urls(self.c), ["/posts/beta/", "/posts/gamma/", "/posts/alpha/"])

    def test_empty_result_leaves_container_empty(self) -> None:
        self.c.set_search_query("no such post")
        self.assertEqual(list(self.c.elements.container.contents), [])
        self.assertFalse(self.c.elements.no_results.has_attr("hidden"))

    def test_sort_by_title(self) -> None:
        self.c.set_sort_key("title-asc")
        self.assertEqual(
            _listed_urls(self.c), ["/posts/alpha/", "/posts/beta/", "/posts/gamma/"]
        )


class TestEnhanceFailures(unittest.TestCase):
    def test_missing_data_leaves_page_untouched(self) -> None:
        doc = parse_document(json_page(with_data=False))
        before = str(doc)

        with tempfile.TemporaryDirectory() as td:
            log_path = Path(td) / "events.jsonl"
            with EventLog.open(log_path) as log:
                self.assertIsNone(enhance(doc, log=log))

            events = [
                json.loads(ln)["event"]
                for ln in log_path.read_text(encoding="utf-8").splitlines()
                if ln.strip()
            ]

        self.assertEqual(str(doc), before)
        self.assertIn("post_store_load_failed", events)

    def test_missing_container(self) -> None:
        page = json_page().replace('id="post-list"', 'id="elsewhere"')
        self.assertIsNone(enhance(page))

    def test_empty_store_renders_no_results(self) -> None:
        controller = enhance(json_page([]))
        assert controller is not None
        controller.toggle_category("Security")
        self.assertEqual(controller.elements.counter.get_text(), "0")
        self.assertFalse(controller.elements.no_results.has_attr("hidden"))


if __name__ == "__main__":
    unittest.main()
