import unittest

from gallery.services.arkiv_client import Attribute, Entity
from gallery.utils.pagination import slice_page, total_pages
from gallery.utils.projection import max_id, parse_id, project_entities, sort_newest_first
from gallery.models import ImageMeta


class TestProjection(unittest.TestCase):

    def test_projects_id_and_prompt(self):
        entity = Entity(key="0x01", attributes=[
            Attribute("app", "CDogs"),
            Attribute("id", 42),
            Attribute("prompt", "A Happy Dog"),
        ])
        [image] = project_entities([entity])
        self.assertEqual(image, ImageMeta(key="0x01", id="42", prompt="A Happy Dog"))

    def test_missing_prompt_is_empty_string(self):
        [image] = project_entities([Entity(key="0x02", attributes=[Attribute("id", "7")])])
        self.assertEqual(image.prompt, "")
        self.assertEqual(image.id, "7")

    def test_malformed_attributes_degrade_to_defaults(self):
        raw = [
            {"key": "0x03"},
            {"key": "0x04", "attributes": None},
            {"key": "0x05", "attributes": "garbage"},
            {"key": "0x06", "attributes": [{"key": "id", "value": None}, {"nokey": 1}]},
        ]
        images = project_entities(raw)
        self.assertEqual(len(images), 4)
        for image in images:
            self.assertEqual(image.id, "")
            self.assertEqual(image.prompt, "")

    def test_falsy_values_project_to_empty_string(self):
        entity = Entity(key="0x07", attributes=[Attribute("id", 0), Attribute("prompt", "")])
        [image] = project_entities([entity])
        self.assertEqual(image.id, "")
        self.assertEqual(image.prompt, "")

        [image] = project_entities([Entity(key="0x08", attributes=[Attribute("id", "0")])])
        self.assertEqual(image.id, "0")

    def test_preserves_order_and_length(self):
        entities = [Entity(key=f"0x{i}", attributes=[Attribute("id", i)]) for i in (3, 1, 2)]
        self.assertEqual([image.id for image in project_entities(entities)], ["3", "1", "2"])

    def test_parse_id(self):
        self.assertEqual(parse_id("42"), 42)
        self.assertEqual(parse_id("12abc"), 12)
        self.assertEqual(parse_id("7.0"), 7)
        self.assertEqual(parse_id(""), 0)
        self.assertEqual(parse_id("abc"), 0)
        self.assertEqual(parse_id(None), 0)

    def test_sort_newest_first_treats_bad_ids_as_zero(self):
        images = [ImageMeta(key="a", id="5"), ImageMeta(key="b", id="x"), ImageMeta(key="c", id="12")]
        self.assertEqual([image.key for image in sort_newest_first(images)], ["c", "a", "b"])
        self.assertEqual(max_id(images), 12)
        self.assertEqual(max_id([]), 0)


class TestOffsetPagination(unittest.TestCase):

    def test_total_pages(self):
        self.assertEqual(total_pages(120, 50), 3)
        self.assertEqual(total_pages(100, 50), 2)
        self.assertEqual(total_pages(0, 50), 0)

    def test_slice_page(self):
        items = list(range(10))
        self.assertEqual(slice_page(items, 1, 4), [0, 1, 2, 3])
        self.assertEqual(slice_page(items, 3, 4), [8, 9])
        self.assertEqual(slice_page(items, 4, 4), [])


if __name__ == '__main__':
    unittest.main()
