"""
Tests for the discovery engine.

Trees are built from FakeNode so every capability, including failures, is
under the test's control.
"""

import pytest

from image_harvester.discovery import DiscoveryEngine, WorkingSet, discover_surface
from image_harvester.models import AssetCategory, AssetRecord
from image_harvester.outcome import FailureKind
from image_harvester.tree import Surface, SurfaceLocation

from fakes import BrokenResolver, FakeNode, FakeResolver, document


def engine_for(location, config, resolver=None):
    return DiscoveryEngine(location, resolver=resolver, config=config)


def locators(records):
    return [record.locator for record in records]


class TestImageExtraction:
    """Test <img> source selection."""

    @pytest.mark.asyncio
    async def test_lazy_attribute_wins_over_everything(self, location, config):
        """Test that data-src beats srcset and src."""
        img = FakeNode("img", attrs={
            "data-src": "lazy.jpg",
            "data-original": "original.jpg",
            "srcset": "big.jpg 2000w",
        }, src="https://example.com/x/src.jpg")
        records = await engine_for(location, config).discover(document(img))
        assert locators(records) == ["https://example.com/x/lazy.jpg"]

    @pytest.mark.asyncio
    async def test_priority_chain_order(self, location, config):
        """Test each step of the image source priority chain."""
        chain = [
            ({"data-original": "b.jpg", "data-lazy-src": "c.jpg", "srcset": "d.jpg 10w"}, "b.jpg"),
            ({"data-lazy-src": "c.jpg", "srcset": "d.jpg 10w"}, "c.jpg"),
            ({"srcset": "d.jpg 10w, e.jpg 20w"}, "e.jpg"),
            ({}, "f.jpg"),
        ]
        for attrs, expected in chain:
            img = FakeNode("img", attrs=attrs, src="https://example.com/x/f.jpg")
            records = await engine_for(location, config).discover(document(img))
            assert locators(records) == [f"https://example.com/x/{expected}"]

    @pytest.mark.asyncio
    async def test_natural_size_preferred_over_box(self, location, config):
        """Test that natural dimensions win, falling back per axis."""
        img = FakeNode("img", src="https://example.com/a.png", natural=(800, 0), box=(200, 100))
        [record] = await engine_for(location, config).discover(document(img))
        assert (record.width, record.height) == (800, 100)
        assert record.category is AssetCategory.IMAGE
        assert record.discovery_index is None

    @pytest.mark.asyncio
    async def test_img_without_source_produces_nothing(self, location, config):
        """Test that a source-less image is counted as empty."""
        engine = engine_for(location, config)
        assert await engine.discover(document(FakeNode("img"))) == []
        assert engine.failures[FailureKind.EMPTY] == 1


class TestBackgroundExtraction:
    """Test computed background-image candidates."""

    @pytest.mark.asyncio
    async def test_background_uses_rendered_box(self, location, config):
        """Test background records take the element box size."""
        div = FakeNode("div", background='url("/hero.jpg")', box=(1200, 400))
        [record] = await engine_for(location, config).discover(document(div))
        assert record.locator == "https://example.com/hero.jpg"
        assert record.category is AssetCategory.BACKGROUND
        assert (record.width, record.height) == (1200, 400)

    @pytest.mark.asyncio
    async def test_img_with_background_yields_background_first(self, location, config):
        """Test extraction order on an image with a background."""
        img = FakeNode("img", background="url(bg.png)", src="https://example.com/x/fg.png")
        records = await engine_for(location, config).discover(document(img))
        assert [r.category for r in records] == [AssetCategory.BACKGROUND, AssetCategory.IMAGE]

    @pytest.mark.asyncio
    async def test_unreadable_style_is_contained(self, location, config):
        """Test that a style failure only drops that node."""
        broken = FakeNode("div", fail_style=True)
        sibling = FakeNode("img", src="https://example.com/ok.png")
        engine = engine_for(location, config)
        records = await engine.discover(document(broken, sibling))
        assert locators(records) == ["https://example.com/ok.png"]
        assert engine.failures[FailureKind.MALFORMED] == 1


class TestRasterExtraction:
    """Test canvas encoding."""

    @pytest.mark.asyncio
    async def test_canvas_is_encoded(self, location, config):
        """Test that a readable canvas becomes a raster record."""
        canvas = FakeNode("canvas", canvas="data:image/png;base64,iVBORw0KGgo=", raster=(300, 150), box=(10, 10))
        [record] = await engine_for(location, config).discover(document(canvas))
        assert record.category is AssetCategory.RASTER
        assert (record.width, record.height) == (300, 150)

    @pytest.mark.asyncio
    async def test_tainted_canvas_is_skipped(self, location, config):
        """Test that a tainted canvas is skipped without stopping the walk."""
        engine = engine_for(location, config)
        records = await engine.discover(document(FakeNode("canvas"), FakeNode("img", src="https://example.com/a.png")))
        assert locators(records) == ["https://example.com/a.png"]
        assert engine.failures[FailureKind.ACCESS_RESTRICTED] == 1


class TestDeduplication:
    """Test first-seen-wins identity."""

    @pytest.mark.asyncio
    async def test_first_seen_dimensions_win(self, location, config):
        """Test that the first occurrence of a locator is kept."""
        first = FakeNode("img", src="https://example.com/a.png", box=(10, 20))
        second = FakeNode("div", background='url("https://example.com/a.png")', box=(500, 600))
        records = await engine_for(location, config).discover(document(first, second))
        assert len(records) == 1
        assert (records[0].width, records[0].height) == (10, 20)
        assert records[0].category is AssetCategory.IMAGE

    @pytest.mark.asyncio
    async def test_relative_and_absolute_forms_collapse(self, location, config):
        """Test that equivalent spellings of a locator dedup."""
        nodes = [
            FakeNode("img", src="/x/a.png"),
            FakeNode("img", src="a.png"),
            FakeNode("img", src="//example.com/x/a.png"),
            FakeNode("img", src="https://example.com/x/a.png"),
        ]
        records = await engine_for(location, config).discover(document(*nodes))
        assert locators(records) == ["https://example.com/x/a.png"]

    @pytest.mark.asyncio
    async def test_no_duplicate_locators_in_output(self, location, config):
        """Test output locators are unique."""
        nodes = [FakeNode("img", src=f"https://example.com/{i % 3}.png") for i in range(10)]
        records = await engine_for(location, config).discover(document(*nodes))
        assert len(records) == len(set(locators(records))) == 3

    @pytest.mark.asyncio
    async def test_vector_never_produces_record(self, location, config):
        """Test that SVG locators are dropped everywhere."""
        nodes = [
            FakeNode("img", src="https://example.com/logo.svg", natural=(100, 100)),
            FakeNode("div", background='url("data:image/svg+xml;base64,PHN2Zz4=")'),
        ]
        assert await engine_for(location, config).discover(document(*nodes)) == []


class TestTraversal:
    """Test pre-order walk and sub-tree recursion."""

    @pytest.mark.asyncio
    async def test_preorder_document_order(self, location, config):
        """Test that records follow document pre-order."""
        tree = document(
            FakeNode("div", children=[
                FakeNode("img", src="https://example.com/1.png"),
                FakeNode("span", children=[FakeNode("img", src="https://example.com/2.png")]),
            ], background="url(https://example.com/0.png)"),
            FakeNode("img", src="https://example.com/3.png"),
        )
        records = await engine_for(location, config).discover(tree)
        assert locators(records) == [f"https://example.com/{i}.png" for i in range(4)]

    @pytest.mark.asyncio
    async def test_root_element_itself_is_examined(self, location, config):
        """Test that the walk root is extracted too."""
        root = FakeNode("img", src="https://example.com/root.png")
        assert locators(await engine_for(location, config).discover(root)) == ["https://example.com/root.png"]

    @pytest.mark.asyncio
    async def test_shadow_root_is_walked_before_host_extraction(self, location, config):
        """Test shadow content is recorded before its host."""
        shadow = FakeNode("", children=[FakeNode("img", src="https://example.com/inner.png")])
        host = FakeNode("my-card", background="url(https://example.com/host.png)", shadow=shadow)
        records = await engine_for(location, config).discover(document(host))
        assert locators(records) == ["https://example.com/inner.png", "https://example.com/host.png"]

    @pytest.mark.asyncio
    async def test_nested_shadow_roots(self, location, config):
        """Test recursion through shadow roots inside shadow roots."""
        innermost = FakeNode("", children=[FakeNode("img", src="https://example.com/deep.png")])
        middle = FakeNode("", children=[FakeNode("x-inner", shadow=innermost)])
        outer = FakeNode("x-outer", shadow=middle)
        records = await engine_for(location, config).discover(document(outer))
        assert locators(records) == ["https://example.com/deep.png"]

    @pytest.mark.asyncio
    async def test_shadow_duplicate_of_earlier_record_is_dropped(self, location, config):
        """Test that shadow records do not replace earlier ones."""
        shadow = FakeNode("", children=[FakeNode("img", src="https://example.com/a.png", box=(99, 99))])
        tree = document(
            FakeNode("img", src="https://example.com/a.png", box=(1, 1)),
            FakeNode("x-card", shadow=shadow),
        )
        [record] = await engine_for(location, config).discover(tree)
        assert (record.width, record.height) == (1, 1)

    @pytest.mark.asyncio
    async def test_failing_subtree_contributes_nothing(self, location, config):
        """Test that a failing shadow root is dropped as a whole."""
        shadow = FakeNode("", children=[
            FakeNode("img", src="https://example.com/lost.png"),
            FakeNode("div", fail_children=True),
        ])
        tree = document(
            FakeNode("x-broken", shadow=shadow),
            FakeNode("img", src="https://example.com/sibling.png"),
        )
        engine = engine_for(location, config)
        records = await engine.discover(tree)
        assert locators(records) == ["https://example.com/sibling.png"]
        assert engine.failures[FailureKind.SUBTREE_FAILED] == 1

    @pytest.mark.asyncio
    async def test_top_level_walk_failure_propagates(self, location, config):
        """Test that a failure at the walk root is not swallowed."""
        with pytest.raises(RuntimeError):
            await engine_for(location, config).discover(FakeNode("", fail_children=True))


class TestEphemeralHandles:
    """Test blob: materialization during the walk."""

    @pytest.mark.asyncio
    async def test_blob_is_materialized(self, location, config):
        """Test that blob: handles become data: locators."""
        resolver = FakeResolver({"blob:https://example.com/1": (b"GIF89a", "image/gif")})
        img = FakeNode("img", src="blob:https://example.com/1")
        [record] = await engine_for(location, config, resolver).discover(document(img))
        assert record.locator == "data:image/gif;base64,R0lGODlh"

    @pytest.mark.asyncio
    async def test_revoked_blob_is_skipped(self, location, config):
        """Test that a revoked handle only drops that candidate."""
        engine = engine_for(location, config, FakeResolver())
        records = await engine.discover(document(
            FakeNode("img", src="blob:https://example.com/gone"),
            FakeNode("img", src="https://example.com/a.png"),
        ))
        assert locators(records) == ["https://example.com/a.png"]
        assert engine.failures[FailureKind.FETCH_FAILED] == 1

    @pytest.mark.asyncio
    async def test_resolver_crash_keeps_siblings(self, location, config):
        """Test that a resolver raising OSError does not abort the walk."""
        engine = engine_for(location, config, BrokenResolver(OSError("connection reset")))
        records = await engine.discover(document(
            FakeNode("img", src="blob:https://example.com/1"),
            FakeNode("img", src="https://example.com/after.png"),
        ))
        assert locators(records) == ["https://example.com/after.png"]
        assert engine.failures[FailureKind.FETCH_FAILED] == 1

    @pytest.mark.asyncio
    async def test_known_locator_is_not_refetched(self, location, config):
        """Test that duplicates never reach the resolver."""
        resolver = FakeResolver({"blob:b": (b"x", "image/png")})
        tree = document(FakeNode("img", src="https://example.com/a.png"), FakeNode("img", src="https://example.com/a.png"))
        await engine_for(location, config, resolver).discover(tree)
        assert resolver.calls == []


class TestWorkingSet:
    def test_absorb_keeps_existing(self):
        """Test that absorbing a child set keeps existing records."""
        working = WorkingSet()
        working.add(AssetRecord(locator="a", width=1, category=AssetCategory.IMAGE))
        added = working.absorb([
            AssetRecord(locator="a", width=9, category=AssetCategory.RASTER),
            AssetRecord(locator="b", category=AssetCategory.IMAGE),
        ])
        assert added == 1
        assert [(r.locator, r.width) for r in working.records()] == [("a", 1), ("b", 0)]


@pytest.mark.asyncio
async def test_discover_surface_uses_surface_location(config):
    """Test that relative locators resolve against the surface."""
    surface = Surface(
        name="main",
        location=SurfaceLocation(href="https://example.org/gallery/"),
        root=document(FakeNode("img", src="p.jpg")),
    )
    records = await discover_surface(surface, config)
    assert locators(records) == ["https://example.org/gallery/p.jpg"]
