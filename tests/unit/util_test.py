from dataclasses import dataclass
from ddt import ddt, data, unpack
from enum import Enum
import json
from typing import Dict, List, Optional
from unittest import TestCase

from netmanager import util


@dataclass
class Item:
    id: int
    name: str


class Colour(Enum):
    RED = 'red'


@ddt
class TestClamp(TestCase):
    @data(
        (-1, 0, 3, 0),
        (0, 0, 3, 0),
        (1, 0, 3, 1),
        (2, 0, 3, 2),
        (3, 0, 3, 3),
        (4, 0, 3, 3),

        (0, -10, 10, 0),
        (-11, -10, 10, -10),
        (11, -10, 10, 10),
    )
    @unpack
    def test_clamp(self, value, min, max, expected):
        actual = util.clamp(value, min, max)
        self.assertEqual(expected, actual, 'The value should be clamped properly')


class TestDataclassJSONEncoder(TestCase):
    def test_encodes_dataclasses_and_enums(self):
        encoded = json.dumps({'item': Item(1, 'a'), 'colour': Colour.RED}, cls=util.DataclassJSONEncoder)
        self.assertEqual({'item': {'id': 1, 'name': 'a'}, 'colour': 'red'}, json.loads(encoded))

    def test_rejects_unserializable_values(self):
        with self.assertRaises(TypeError):
            util.encode({'value': object()})

    def test_encode_is_deterministic(self):
        self.assertEqual(util.encode({'b': 2, 'a': [1, 2]}), util.encode({'b': 2, 'a': [1, 2]}))


@ddt
class TestDataclassJSONDecoder(TestCase):
    @data(
        (b'{"id": 1, "name": "a"}', Item, Item(1, 'a')),
        (b'{"id": 1}', dict, {'id': 1}),
        (b'[1, 2]', list, [1, 2]),
        (b'"text"', str, 'text'),
        (b'3', float, 3.0),
        (b'null', object, None),
    )
    @unpack
    def test_decode(self, payload, class_type, expected):
        self.assertEqual(expected, util.decode(payload, class_type))

    @data(
        (b'[1, 2]', Item, TypeError),
        (b'{"id": 1, "unexpected": true}', Item, TypeError),
        (b'{"id": 1}', list, TypeError),
        (b'not json', dict, ValueError),
        (b'\xff\xfe', dict, ValueError),
    )
    @unpack
    def test_decode_failures(self, payload, class_type, expected_error):
        with self.assertRaises(expected_error):
            util.decode(payload, class_type)


@dataclass
class Tag:
    label: str


@dataclass
class Article:
    item: Item
    tags: List[Tag]
    related: Dict[str, Item]
    editor: Optional[Item] = None


@ddt
class TestNestedDecoding(TestCase):
    def test_nested_dataclasses_are_built(self):
        payload = json.dumps({
            'item': {'id': 1, 'name': 'a'},
            'tags': [{'label': 'x'}, {'label': 'y'}],
            'related': {'next': {'id': 2, 'name': 'b'}},
            'editor': {'id': 3, 'name': 'c'},
        }).encode('utf-8')

        article = util.decode(payload, Article)

        self.assertEqual(Article(Item(1, 'a'), [Tag('x'), Tag('y')], {'next': Item(2, 'b')}, Item(3, 'c')), article)
        self.assertIsInstance(article.item, Item)
        self.assertIsInstance(article.tags[0], Tag)
        self.assertIsInstance(article.related['next'], Item)

    def test_optional_fields_accept_null_and_may_be_omitted(self):
        self.assertIsNone(util.decode(b'{"item": {"id": 1, "name": "a"}, "tags": [], "related": {}, "editor": null}',
                                      Article).editor)
        self.assertIsNone(util.decode(b'{"item": {"id": 1, "name": "a"}, "tags": [], "related": {}}', Article).editor)

    @data(
        b'{"item": {"id": "1", "name": "a"}, "tags": [], "related": {}}',
        b'{"item": {"id": 1, "name": "a"}, "tags": {"label": "x"}, "related": {}}',
        b'{"item": {"id": 1, "name": "a"}, "tags": [{"label": 1}], "related": {}}',
        b'{"item": {"id": 1, "name": "a"}, "tags": [], "related": {"next": 2}}',
        b'{"item": {"id": true, "name": "a"}, "tags": [], "related": {}}',
    )
    def test_nested_values_of_the_wrong_shape(self, payload):
        with self.assertRaises(TypeError):
            util.decode(payload, Article)

    @data(
        (b'true', int),
        (b'false', float),
        (b'1', bool),
    )
    @unpack
    def test_booleans_and_numbers_are_distinct(self, payload, class_type):
        with self.assertRaises(TypeError):
            util.decode(payload, class_type)

    def test_list_of_dataclasses(self):
        self.assertEqual([Item(1, 'a')], util.decode(b'[{"id": 1, "name": "a"}]', List[Item]))
