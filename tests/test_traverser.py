"""
Tests for the cascading-selection and directory-tree traversers.
"""

import tempfile
import unittest
from pathlib import Path

from lged_crawler.config import DISTRICT_SELECT, UPAZILA_SELECT
from lged_crawler.core.fetcher import FormFetcher
from lged_crawler.core.traverser import CascadeTraverser, DirectoryTraverser
from lged_crawler.errors import DiscoveryFailure, FetchFailure, TransitionFailure


SITE = "https://oldweb.lged.gov.bd/"
FORM = SITE + "ViewMap.aspx"
ROOT = SITE + "UploadedDocument/"


class FakeFormSite:
    """Navigator double that models the district → upazila postbacks."""

    def __init__(self, districts, upazilas, links, bodies, fail_select=(),
                 break_on=()):
        self.url = ""
        self.districts = districts
        self.upazilas = upazilas          # district value -> options
        self.links = links                # upazila value -> hrefs
        self.bodies = bodies              # url -> (status, body)
        self.fail_select = set(fail_select)
        self.break_on = set(break_on)       # selecting these lands on an error page
        self.broken = False
        self.selected: dict[str, str] = {}
        self.calls: list[tuple] = []

    def load_page(self, url):
        self.calls.append(("load", url))
        self.url = url
        self.broken = False
        self.selected.clear()

    def select_option(self, selector, value, fallback_delay=2.0):
        self.calls.append(("select", selector, value))
        if value in self.break_on:
            self.break_on.discard(value)
            self.broken = True
        if self.broken or value in self.fail_select:
            raise TransitionFailure(f"Could not select {value!r} in {selector}")
        self.selected[selector] = value
        if selector == DISTRICT_SELECT:
            self.selected.pop(UPAZILA_SELECT, None)

    def query_options(self, selector):
        if self.broken:
            return []
        if selector == DISTRICT_SELECT:
            return self.districts
        district = self.selected.get(DISTRICT_SELECT)
        return self.upazilas.get(district, [])

    def query_link(self, element_id):
        return None

    def content(self):
        upazila = self.selected.get(UPAZILA_SELECT)
        return "".join(f'<a href="{h}">map</a>' for h in self.links.get(upazila, []))

    def fetch_response_body(self, url):
        self.calls.append(("fetch", url))
        return self.bodies.get(url, (404, b""))


class FakeListingFetcher:
    """HttpFetcher double backed by a dict of listings."""

    def __init__(self, listings, bodies=None):
        self.listings = listings          # url -> (subdirs, files)
        self.bodies = bodies or {}
        self.listed: list[str] = []
        self.fetched: list[str] = []

    def list_directory(self, url):
        self.listed.append(url)
        if url not in self.listings:
            raise FetchFailure(url, "HTTP 404")
        return self.listings[url]

    def fetch_binary(self, url):
        self.fetched.append(url)
        if url not in self.bodies:
            raise FetchFailure(url, "HTTP 404")
        return iter([self.bodies[url]])


def _opt(value, text):
    return {"value": value, "text": text}


class _TempOutput(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.out = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def written(self):
        return sorted(
            str(p.relative_to(self.out)).replace("\\", "/")
            for p in self.out.rglob("*") if p.is_file()
        )


class TestCascadeTraverser(_TempOutput):
    def _traverser(self, site):
        return CascadeTraverser(
            FormFetcher(site), self.out, base_url=FORM,
            leaf_delay=0, district_delay=0,
        )

    def test_happy_path(self):
        site = FakeFormSite(
            districts=[_opt("-1", "Select District"), _opt("10", "Dhaka")],
            upazilas={"10": [_opt("0", "Select"), _opt("5", "Savar")]},
            links={"5": ["/UploadedDocument/x/savar_road.jpg",
                         "/UploadedDocument/x/savar.jpg"]},
            bodies={
                ROOT + "x/savar.jpg": (200, b"upazila-map"),
                ROOT + "x/savar_road.jpg": (200, b"road-map"),
            },
        )
        with self.assertLogs("lged-crawler", level="INFO") as logs:
            stats = self._traverser(site).run()

        self.assertEqual(self.written(), [
            "road/dhaka__savar_road_1.jpg",
            "upazila/dhaka__savar_upazila_1.jpg",
        ])
        self.assertEqual(
            (self.out / "upazila" / "dhaka__savar_upazila_1.jpg").read_bytes(),
            b"upazila-map",
        )
        saves = [line for line in logs.output if "[SAVE]" in line]
        self.assertEqual(len(saves), 2)
        self.assertEqual(stats["saved"], 2)
        self.assertEqual(stats["errors"], 0)

    def test_selection_order_follows_remote_order(self):
        site = FakeFormSite(
            districts=[_opt("20", "Khulna"), _opt("10", "Dhaka")],
            upazilas={"20": [_opt("7", "Dumuria")], "10": [_opt("5", "Savar")]},
            links={}, bodies={},
        )
        with self.assertLogs("lged-crawler", level="INFO"):
            self._traverser(site).run()
        selects = [c[2] for c in site.calls if c[0] == "select"]
        self.assertEqual(selects, ["20", "7", "10", "5"])

    def test_empty_upazila_list_warns_and_continues(self):
        site = FakeFormSite(
            districts=[_opt("20", "Empty"), _opt("10", "Dhaka")],
            upazilas={"10": [_opt("5", "Savar")]},
            links={"5": ["/UploadedDocument/x/savar.jpg"]},
            bodies={ROOT + "x/savar.jpg": (200, b"map")},
        )
        with self.assertLogs("lged-crawler", level="INFO") as logs:
            stats = self._traverser(site).run()

        warnings = [r for r in logs.records if r.levelname == "WARNING"]
        self.assertEqual(len(warnings), 1)
        self.assertIn("Empty", warnings[0].getMessage())
        self.assertEqual(self.written(), ["upazila/dhaka__savar_upazila_1.jpg"])
        self.assertEqual(stats["saved"], 1)

    def test_fetch_failure_logged_and_traversal_continues(self):
        missing = ROOT + "x/savar.jpg"
        site = FakeFormSite(
            districts=[_opt("10", "Dhaka")],
            upazilas={"10": [_opt("5", "Savar"), _opt("6", "Dhamrai")]},
            links={
                "5": ["/UploadedDocument/x/savar.jpg",
                      "/UploadedDocument/x/savar_road.jpg"],
                "6": ["/UploadedDocument/x/dhamrai.jpg"],
            },
            bodies={
                ROOT + "x/savar_road.jpg": (200, b"road"),
                ROOT + "x/dhamrai.jpg": (200, b"map"),
            },
        )
        with self.assertLogs("lged-crawler", level="INFO") as logs:
            stats = self._traverser(site).run()

        errors = [r.getMessage() for r in logs.records if r.levelname == "ERROR"]
        self.assertEqual(len(errors), 1)
        self.assertIn(missing, errors[0])
        self.assertEqual(self.written(), [
            "road/dhaka__savar_road_1.jpg",
            "upazila/dhaka__dhamrai_upazila_1.jpg",
        ])
        self.assertEqual(stats["errors"], 1)
        self.assertEqual(stats["saved"], 2)

    def test_no_links_is_a_soft_miss(self):
        site = FakeFormSite(
            districts=[_opt("10", "Dhaka")],
            upazilas={"10": [_opt("5", "Savar")]},
            links={}, bodies={},
        )
        with self.assertLogs("lged-crawler", level="INFO") as logs:
            stats = self._traverser(site).run()
        self.assertTrue(any("[MISS]" in line for line in logs.output))
        self.assertEqual(stats["missed"], 1)
        self.assertEqual(stats["errors"], 0)
        self.assertEqual(self.written(), [])

    def test_unlabelled_links_fall_back_to_primary(self):
        site = FakeFormSite(
            districts=[_opt("10", "Dhaka")],
            upazilas={"10": [_opt("5", "Savar")]},
            links={"5": ["/UploadedDocument/x/1234.jpg"]},
            bodies={ROOT + "x/1234.jpg": (200, b"map")},
        )
        with self.assertLogs("lged-crawler", level="INFO"):
            self._traverser(site).run()
        self.assertEqual(self.written(), ["upazila/dhaka__savar_upazila_1.jpg"])

    def test_rerun_skips_without_fetching(self):
        def make_site():
            return FakeFormSite(
                districts=[_opt("10", "Dhaka")],
                upazilas={"10": [_opt("5", "Savar")]},
                links={"5": ["/UploadedDocument/x/savar.jpg"]},
                bodies={ROOT + "x/savar.jpg": (200, b"map")},
            )

        with self.assertLogs("lged-crawler", level="INFO"):
            self._traverser(make_site()).run()
        second = make_site()
        with self.assertLogs("lged-crawler", level="INFO"):
            stats = self._traverser(second).run()
        self.assertEqual(stats["skipped"], 1)
        self.assertEqual([c for c in second.calls if c[0] == "fetch"], [])

    def test_failed_upazila_selection_is_isolated(self):
        site = FakeFormSite(
            districts=[_opt("10", "Dhaka")],
            upazilas={"10": [_opt("5", "Savar"), _opt("6", "Dhamrai")]},
            links={"6": ["/UploadedDocument/x/dhamrai.jpg"]},
            bodies={ROOT + "x/dhamrai.jpg": (200, b"map")},
            fail_select={"5"},
        )
        with self.assertLogs("lged-crawler", level="INFO"):
            stats = self._traverser(site).run()
        self.assertEqual(stats["errors"], 1)
        self.assertEqual(self.written(), ["upazila/dhaka__dhamrai_upazila_1.jpg"])

    def test_empty_district_list_is_fatal(self):
        site = FakeFormSite(
            districts=[_opt("-1", "Select District")],
            upazilas={}, links={}, bodies={},
        )
        with self.assertLogs("lged-crawler", level="INFO"):
            with self.assertRaises(DiscoveryFailure):
                self._traverser(site).run()

    def test_stop_halts_before_next_district(self):
        site = FakeFormSite(
            districts=[_opt("10", "Dhaka"), _opt("20", "Khulna")],
            upazilas={"10": [_opt("5", "Savar")], "20": [_opt("7", "Dumuria")]},
            links={}, bodies={},
        )
        traverser = self._traverser(site)
        original = site.select_option

        def select_and_stop(selector, value, fallback_delay=2.0):
            original(selector, value, fallback_delay)
            if value == "5":
                traverser.stop()

        site.select_option = select_and_stop
        with self.assertLogs("lged-crawler", level="INFO"):
            traverser.run()
        self.assertNotIn(("select", DISTRICT_SELECT, "20"), site.calls)

    def test_form_reloaded_after_failed_upazila(self):
        site = FakeFormSite(
            districts=[_opt("10", "Dhaka"), _opt("20", "Khulna")],
            upazilas={
                "10": [_opt("5", "Savar"), _opt("6", "Dhamrai")],
                "20": [_opt("7", "Dumuria")],
            },
            links={
                "6": ["/UploadedDocument/x/dhamrai.jpg"],
                "7": ["/UploadedDocument/y/dumuria.jpg"],
            },
            bodies={
                ROOT + "x/dhamrai.jpg": (200, b"dhamrai"),
                ROOT + "y/dumuria.jpg": (200, b"dumuria"),
            },
            break_on={"5"},
        )
        with self.assertLogs("lged-crawler", level="INFO"):
            stats = self._traverser(site).run()

        self.assertEqual(self.written(), [
            "upazila/dhaka__dhamrai_upazila_1.jpg",
            "upazila/khulna__dumuria_upazila_1.jpg",
        ])
        self.assertEqual(stats["errors"], 1)
        broken_at = site.calls.index(("select", UPAZILA_SELECT, "5"))
        self.assertEqual(site.calls[broken_at + 1:broken_at + 3], [
            ("load", FORM),
            ("select", DISTRICT_SELECT, "10"),
        ])

    def test_form_reloaded_after_failed_district(self):
        site = FakeFormSite(
            districts=[_opt("10", "Dhaka"), _opt("20", "Khulna")],
            upazilas={"20": [_opt("7", "Dumuria")]},
            links={"7": ["/UploadedDocument/y/dumuria.jpg"]},
            bodies={ROOT + "y/dumuria.jpg": (200, b"dumuria")},
            break_on={"10"},
        )
        with self.assertLogs("lged-crawler", level="INFO"):
            self._traverser(site).run()
        self.assertEqual(self.written(), ["upazila/khulna__dumuria_upazila_1.jpg"])
        loads = [c for c in site.calls if c[0] == "load"]
        self.assertEqual(len(loads), 2)

    def test_interrupt_marks_run_stopped(self):
        site = FakeFormSite(
            districts=[_opt("10", "Dhaka")],
            upazilas={"10": [_opt("5", "Savar")]},
            links={}, bodies={},
        )

        def interrupt(selector, value, fallback_delay=2.0):
            raise KeyboardInterrupt

        site.select_option = interrupt
        traverser = self._traverser(site)
        with self.assertLogs("lged-crawler", level="INFO") as logs:
            with self.assertRaises(KeyboardInterrupt):
                traverser.run()
        self.assertTrue(traverser.stopped)
        self.assertTrue(any("Crawl stopped." in line for line in logs.output))


class TestDirectoryTraverser(_TempOutput):
    def _traverser(self, fetcher, **kwargs):
        kwargs.setdefault("leaf_delay", 0)
        return DirectoryTraverser(fetcher, self.out, root_url=ROOT, **kwargs)

    def test_depth_filter(self):
        fetcher = FakeListingFetcher(
            listings={
                ROOT: (["Dhaka%20Division/"], []),
                ROOT + "Dhaka%20Division/": (["Dhaka/"], ["division.jpg"]),
                ROOT + "Dhaka%20Division/Dhaka/": (["Savar/"], ["district.jpg"]),
                ROOT + "Dhaka%20Division/Dhaka/Savar/": ([], ["savar.jpg"]),
            },
            bodies={ROOT + "Dhaka%20Division/Dhaka/Savar/savar.jpg": b"map"},
        )
        with self.assertLogs("lged-crawler", level="INFO"):
            stats = self._traverser(fetcher).run()
        self.assertEqual(fetcher.fetched, [ROOT + "Dhaka%20Division/Dhaka/Savar/savar.jpg"])
        self.assertEqual(self.written(), [
            "upazila/dhaka_division__dhaka__savar_upazila_1.jpg",
        ])
        self.assertEqual(stats["saved"], 1)

    def test_extension_filter_and_categories(self):
        leaf = ROOT + "D/Dhaka/Savar/"
        fetcher = FakeListingFetcher(
            listings={
                ROOT: (["D/"], []),
                ROOT + "D/": (["Dhaka/"], []),
                ROOT + "D/Dhaka/": (["Savar/"], []),
                leaf: ([], ["readme.txt", "map.JPG", "road_map.jpg", "Thumbs.db"]),
            },
            bodies={leaf + "map.JPG": b"a", leaf + "road_map.jpg": b"b"},
        )
        with self.assertLogs("lged-crawler", level="INFO"):
            self._traverser(fetcher).run()
        self.assertEqual(self.written(), [
            "road/d__dhaka__savar_road_1.jpg",
            "upazila/d__dhaka__savar_upazila_1.jpg",
        ])

    def test_files_processed_before_subdirectories(self):
        fetcher = FakeListingFetcher(
            listings={
                ROOT: (["A/"], []),
                ROOT + "A/": (["B/"], []),
                ROOT + "A/B/": (["C/", "D/"], []),
                ROOT + "A/B/C/": (["E/"], ["c.jpg"]),
                ROOT + "A/B/C/E/": ([], ["e.jpg"]),
                ROOT + "A/B/D/": ([], ["d.jpg"]),
            },
            bodies={
                ROOT + "A/B/C/c.jpg": b"c",
                ROOT + "A/B/C/E/e.jpg": b"e",
                ROOT + "A/B/D/d.jpg": b"d",
            },
        )
        with self.assertLogs("lged-crawler", level="INFO"):
            self._traverser(fetcher).run()
        self.assertEqual(fetcher.fetched, [
            ROOT + "A/B/C/c.jpg", ROOT + "A/B/C/E/e.jpg", ROOT + "A/B/D/d.jpg",
        ])

    def test_self_referential_links_ignored(self):
        fetcher = FakeListingFetcher(
            listings={
                ROOT: (["A/", "./", "/UploadedDocument/", "../"], []),
                ROOT + "A/": (["./", "../", "/UploadedDocument/A/", "/", "B/"], []),
                ROOT + "A/B/": (["/UploadedDocument/A/", "../B/", "C/"], []),
                ROOT + "A/B/C/": (["../../"], ["map.jpg"]),
            },
            bodies={ROOT + "A/B/C/map.jpg": b"m"},
        )
        with self.assertLogs("lged-crawler", level="INFO"):
            self._traverser(fetcher).run()
        self.assertEqual(fetcher.listed, [ROOT, ROOT + "A/", ROOT + "A/B/", ROOT + "A/B/C/"])
        self.assertEqual(self.written(), ["upazila/a__b__c_upazila_1.jpg"])

    def test_listing_failure_is_isolated(self):
        fetcher = FakeListingFetcher(
            listings={
                ROOT: (["Broken/", "Ok/"], []),
                ROOT + "Ok/": (["X/"], []),
                ROOT + "Ok/X/": (["Y/"], []),
                ROOT + "Ok/X/Y/": ([], ["m.jpg"]),
            },
            bodies={ROOT + "Ok/X/Y/m.jpg": b"m"},
        )
        with self.assertLogs("lged-crawler", level="INFO") as logs:
            stats = self._traverser(fetcher).run()
        errors = [r.getMessage() for r in logs.records if r.levelname == "ERROR"]
        self.assertEqual(len(errors), 1)
        self.assertIn(ROOT + "Broken/", errors[0])
        self.assertEqual(stats["saved"], 1)

    def test_download_failure_is_isolated(self):
        leaf = ROOT + "A/B/C/"
        fetcher = FakeListingFetcher(
            listings={
                ROOT: (["A/"], []),
                ROOT + "A/": (["B/"], []),
                ROOT + "A/B/": (["C/"], []),
                leaf: ([], ["gone.jpg", "ok.jpg"]),
            },
            bodies={leaf + "ok.jpg": b"ok"},
        )
        with self.assertLogs("lged-crawler", level="INFO") as logs:
            stats = self._traverser(fetcher).run()
        self.assertTrue(any(leaf + "gone.jpg" in line and "[ERR]" in line
                            for line in logs.output))
        self.assertEqual(stats["errors"], 1)
        self.assertEqual(stats["saved"], 1)

    def test_root_listing_failure_is_fatal(self):
        fetcher = FakeListingFetcher(listings={})
        with self.assertLogs("lged-crawler", level="INFO"):
            with self.assertRaises(DiscoveryFailure):
                self._traverser(fetcher).run()

    def test_empty_root_listing_is_fatal(self):
        fetcher = FakeListingFetcher(listings={ROOT: ([], [])})
        with self.assertLogs("lged-crawler", level="INFO"):
            with self.assertRaises(DiscoveryFailure):
                self._traverser(fetcher).run()

    def test_worker_pool_walks_every_subtree(self):
        listings = {ROOT: ([f"D{i}/" for i in range(4)], [])}
        bodies = {}
        for i in range(4):
            listings[ROOT + f"D{i}/"] = (["Z/"], [])
            listings[ROOT + f"D{i}/Z/"] = (["U/"], [])
            listings[ROOT + f"D{i}/Z/U/"] = ([], ["m.jpg"])
            bodies[ROOT + f"D{i}/Z/U/m.jpg"] = b"m"
        fetcher = FakeListingFetcher(listings, bodies)
        with self.assertLogs("lged-crawler", level="INFO"):
            stats = self._traverser(fetcher, workers=3).run()
        self.assertEqual(stats["saved"], 4)
        self.assertEqual(len(self.written()), 4)

    def test_min_depth_is_configurable(self):
        fetcher = FakeListingFetcher(
            listings={ROOT: (["A/"], []), ROOT + "A/": ([], ["m.jpg"])},
            bodies={ROOT + "A/m.jpg": b"m"},
        )
        with self.assertLogs("lged-crawler", level="INFO"):
            self._traverser(fetcher, min_depth=2).run()
        self.assertEqual(self.written(), ["upazila/a_upazila_1.jpg"])


if __name__ == "__main__":
    unittest.main()
