import unittest

from gallery.models import ImageMeta
from gallery.services.anchor_cache import AnchorCache
from gallery.services.arkiv_client import ArkivQueryError
from gallery.services.image_collection import ImageCollection
from gallery.services.materialization import Materializer, filter_by_prompt
from tests.fake_arkiv import OWNER, FakeArkivClient, make_image, make_images


def build(records, **client_kwargs):
    client = FakeArkivClient(records, **client_kwargs)
    collection = ImageCollection(client, owner=OWNER)
    anchor = AnchorCache(collection)
    return client, anchor, Materializer(collection, anchor, page_size=50)


class TestDrainAll(unittest.IsolatedAsyncioTestCase):

    async def test_drains_every_page_newest_first(self):
        client, _, materializer = build(make_images(120))
        images = await materializer.drain_all()

        self.assertEqual(len(images), 120)
        self.assertEqual([int(image.id) for image in images], list(range(120, 0, -1)))
        self.assertEqual(len(client.calls), 3)

    async def test_reports_progress_after_each_page(self):
        _, _, materializer = build(make_images(120))
        events = []
        await materializer.drain_all(lambda status, count=0: events.append((status, count)))

        self.assertEqual(events[0][0], "Loading all images for search...")
        self.assertIn(("Loading page 1...", 50), events)
        self.assertIn(("Loading page 2...", 100), events)
        self.assertIn(("Loading page 3...", 120), events)
        self.assertEqual(events[-1], ("Complete", 120))

    async def test_raises_anchor_to_observed_max(self):
        _, anchor, materializer = build(make_images(80))
        anchor.observe(10)
        await materializer.drain_all()
        self.assertEqual(anchor.cached_max_id, 80)

    async def test_never_lowers_anchor(self):
        _, anchor, materializer = build(make_images(80))
        anchor.observe(500)
        await materializer.drain_all()
        self.assertEqual(anchor.cached_max_id, 500)

    async def test_only_owned_images_of_the_app(self):
        records = make_images(5) + [
            make_image(99, owner="0xsomeoneelse"),
            make_image(98, app="OtherApp"),
            make_image(97, entity_type="thumbnail"),
        ]
        _, _, materializer = build(records)
        images = await materializer.drain_all()
        self.assertEqual(len(images), 5)

    async def test_mid_drain_failure_aborts(self):
        _, anchor, materializer = build(make_images(120), fail_on_call=2)
        with self.assertRaises(ArkivQueryError):
            await materializer.drain_all()
        self.assertIsNone(anchor.cached_max_id)

    async def test_empty_collection(self):
        _, anchor, materializer = build([])
        self.assertEqual(await materializer.drain_all(), [])
        self.assertIsNone(anchor.cached_max_id)


class TestFilterByPrompt(unittest.TestCase):

    def setUp(self):
        self.images = [
            ImageMeta(key="1", id="1", prompt="A Happy Dog"),
            ImageMeta(key="2", id="2", prompt="sleepy cat"),
            ImageMeta(key="3", id="3", prompt=""),
        ]

    def test_case_insensitive_substring(self):
        self.assertEqual([i.key for i in filter_by_prompt(self.images, "happy")], ["1"])
        self.assertEqual([i.key for i in filter_by_prompt(self.images, "HAPPY")], ["1"])
        self.assertEqual([i.key for i in filter_by_prompt(self.images, "  Dog ")], ["1"])

    def test_no_match(self):
        self.assertEqual(filter_by_prompt(self.images[:1], "cat"), [])

    def test_blank_search_keeps_everything(self):
        self.assertEqual(len(filter_by_prompt(self.images, "   ")), 3)


if __name__ == '__main__':
    unittest.main()
