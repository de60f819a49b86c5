import random
import unittest

from gallery.services.anchor_cache import AnchorCache
from gallery.services.image_collection import ImageCollection
from gallery.services.materialization import Materializer
from gallery.services.arkiv_client import ArkivQueryError
from gallery.services.reverse_pagination import ReversePaginator, window
from tests.fake_arkiv import OWNER, FakeArkivClient, make_images


def build(records, **client_kwargs):
    client = FakeArkivClient(records, **client_kwargs)
    collection = ImageCollection(client, owner=OWNER)
    anchor = AnchorCache(collection)
    paginator = ReversePaginator(collection, anchor, Materializer(collection, anchor))
    return client, anchor, paginator


class TestWindow(unittest.TestCase):

    def test_consecutive_windows_are_contiguous(self):
        for max_id, per_page in ((120, 50), (1000, 7), (99, 100)):
            page = 1
            while True:
                lower, upper = window(page, per_page, max_id)
                next_lower, next_upper = window(page + 1, per_page, max_id)
                if upper <= 0:
                    break
                self.assertEqual(upper, next_upper + per_page)
                self.assertEqual(lower, max(0, next_upper))
                self.assertGreaterEqual(lower, 0)
                page += 1

    def test_windows_for_anchor_120(self):
        self.assertEqual(window(1, 50, 120), (70, 120))
        self.assertEqual(window(2, 50, 120), (20, 70))
        self.assertEqual(window(3, 50, 120), (0, 20))
        lower, upper = window(4, 50, 120)
        self.assertEqual(lower, 0)
        self.assertLessEqual(upper, 0)


class TestReversePaginator(unittest.IsolatedAsyncioTestCase):

    async def test_first_page_is_newest_first(self):
        records = make_images(120)
        random.Random(7).shuffle(records)
        _, _, paginator = build(records)

        result = await paginator.get_page(1, 50)
        ids = [int(image.id) for image in result.images]
        self.assertEqual(ids, list(range(120, 70, -1)))
        self.assertEqual(result.total, 120)
        self.assertEqual(result.total_pages, 3)

    async def test_last_window_is_clipped(self):
        _, _, paginator = build(make_images(120))
        result = await paginator.get_page(3, 50)
        self.assertEqual([int(image.id) for image in result.images], list(range(20, 0, -1)))
        self.assertEqual(result.total_pages, 3)

    async def test_page_past_the_end_is_empty(self):
        client, _, paginator = build(make_images(120))
        result = await paginator.get_page(4, 50)
        self.assertEqual(result.images, [])
        self.assertEqual(result.total, 120)
        self.assertEqual(result.total_pages, 3)
        # Anchor probe only, no query for a window entirely below zero
        self.assertEqual(len(client.calls), 1)

    async def test_range_query_bounds_and_headroom(self):
        client, _, paginator = build(make_images(120))
        await paginator.get_page(2, 50)

        spec, _ = client.calls[-1]
        query = spec.to_query_string()
        self.assertIn("id > 20", query)
        self.assertIn("id <= 70", query)
        self.assertEqual(spec.page_size, 60)

    async def test_short_reads_drain_the_cursor(self):
        client, _, paginator = build(make_images(30))
        paginator.headroom = -15  # limit 5, needs several next() calls
        result = await paginator.get_page(1, 20)
        self.assertEqual(len(result.images), 20)
        self.assertEqual(result.images[0].id, "30")
        self.assertGreater(len(client.calls), 2)

    async def test_gaps_return_fewer_images(self):
        records = [r for r in make_images(120) if r["attributes"]["id"] % 10 != 0]
        _, _, paginator = build(records)
        result = await paginator.get_page(1, 50)
        self.assertEqual(len(result.images), 45)
        self.assertEqual(result.images[0].id, "119")

    async def test_string_ids_fall_back_to_full_load_on_page_one(self):
        client, anchor, paginator = build(make_images(75, numeric_id=False))
        result = await paginator.get_page(1, 50)

        self.assertEqual(len(result.images), 50)
        self.assertEqual(result.images[0].id, "75")
        self.assertEqual(result.total, 75)
        self.assertEqual(result.total_pages, 2)
        self.assertEqual(anchor.cached_max_id, 75)

    async def test_string_ids_do_not_fall_back_after_page_one(self):
        client, _, paginator = build(make_images(75, numeric_id=False))
        result = await paginator.get_page(2, 50)
        self.assertEqual(result.images, [])
        self.assertEqual(result.total_pages, 2)
        self.assertEqual(len(client.calls), 2)

    async def test_empty_store(self):
        _, _, paginator = build([])
        result = await paginator.get_page(1, 50)
        self.assertEqual(result.images, [])
        self.assertEqual(result.total, 0)
        self.assertEqual(result.total_pages, 0)

    async def test_remote_failure_propagates(self):
        _, _, paginator = build(make_images(120), fail_on_call=2)
        with self.assertRaises(ArkivQueryError):
            await paginator.get_page(1, 50)

    async def test_progress_messages(self):
        _, _, paginator = build(make_images(120))
        events = []
        await paginator.get_page(1, 50, lambda status, count=0: events.append((status, count)))

        statuses = [status for status, _ in events]
        self.assertEqual(statuses[0], "Connecting to ARKIV...")
        self.assertIn("Loading images 71 to 120...", statuses)
        self.assertEqual(events[-1], ("Complete", 50))


if __name__ == '__main__':
    unittest.main()
