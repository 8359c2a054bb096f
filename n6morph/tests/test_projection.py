# Copyright (c) 2013-2025 NASK. All rights reserved.

import datetime
import unittest

from unittest_expander import (
    expand,
    foreach,
    param,
)

from n6morph.projection import (
    deep_filter_by_schema_fields,
    deep_map_from_struct,
    filter_by_schema_fields,
    map_from_struct,
)
from n6morph.schema import NOT_LOADED
from n6morph.tests._generic_helpers import TestCaseMixin
from n6morph.tests._models import (
    Address,
    Author,
    Book,
    Phone,
    Profile,
    make_session,
)


DT = datetime.datetime(2021, 9, 12, 8, 0)


def _profile():
    return Profile(
        nickname='lem',
        updated_at=DT,
        address=Address(street='Kliny', city='Krakow'),
        phones=[Phone(id=1, number='111')])


@expand
class Test_map_from_struct(TestCaseMixin, unittest.TestCase):

    def test_shallow(self):
        profile = _profile()
        result = map_from_struct(profile)
        self.assertEqual(result, {
            'nickname': 'lem',
            'updated_at': DT,
            'address': profile.address,
            'phones': profile.phones,
        })
        self.assertIs(result['address'], profile.address)

    @foreach(
        param(kwargs=dict(exclude=['nickname']),
              expected_keys={'updated_at', 'address', 'phones'}),
        param(kwargs=dict(exclude='nickname'),
              expected_keys={'updated_at', 'address', 'phones'}),
        param(kwargs=dict(exclude_timestamps=True),
              expected_keys={'nickname', 'address', 'phones'}),
        param(kwargs=dict(exclude=('address', 'phones'), exclude_timestamps=True),
              expected_keys={'nickname'}),
    )
    def test_exclude(self, kwargs, expected_keys):
        self.assertEqual(set(map_from_struct(_profile(), **kwargs)), expected_keys)

    @foreach(
        param(struct=Phone(id=1), expected_keys={'number', 'label'}),
        param(struct=Book(id=1), expected_keys={
            'title', 'pages', 'genre', 'kind', 'author_id', 'author'}),
    )
    def test_exclude_id(self, struct, expected_keys):
        self.assertEqual(set(map_from_struct(struct, exclude_id=True)), expected_keys)


class TestDeepMapping(TestCaseMixin, unittest.TestCase):

    def test_embedded(self):
        self.assertEqual(deep_map_from_struct(_profile(), exclude_id=True), {
            'nickname': 'lem',
            'updated_at': DT,
            'address': {'street': 'Kliny', 'city': 'Krakow', 'postal_code': None},
            'phones': [{'number': '111', 'label': 'home'}],
        })

    def test_back_reference(self):
        author = Author(name='Lem', books=[Book(title='Solaris')])
        result = deep_map_from_struct(author)
        [book_map] = result['books']
        self.assertIs(book_map['author'], NOT_LOADED)
        self.assertEqual(book_map['title'], 'Solaris')

    def test_database_struct(self):
        session = make_session()
        session.add(Author(name='Lem', home_address=Address(city='Krakow'),
                           books=[Book(title='Solaris'), Book(title='Eden')]))
        session.commit()
        session.expunge_all()
        author = session.query(Author).one()
        result = deep_map_from_struct(author, exclude_timestamps=True)
        self.assertIs(result['books'], NOT_LOADED)
        self.assertEqual(result['home_address'],
                         {'street': None, 'city': 'Krakow', 'postal_code': None})
        self.assertIs(result['active'], True)
        self.assertNotIn('updated_at', result)
        # after loading the association
        self.assertEqual(len(author.books), 2)
        result = deep_map_from_struct(author)
        self.assertEqual([b['title'] for b in result['books']], ['Solaris', 'Eden'])
        self.assertEqual([b['author'] for b in result['books']], [NOT_LOADED, NOT_LOADED])
        session.close()


@expand
class TestFiltering(TestCaseMixin, unittest.TestCase):

    @foreach(
        param(kwargs={}, expected={
            'name': 'Lem', 'books': NOT_LOADED}),
        param(kwargs=dict(filter_not_loaded=True), expected={
            'name': 'Lem'}),
        param(kwargs=dict(filter_assocs=True), expected={
            'name': 'Lem'}),
    )
    def test_filter_by_schema_fields(self, kwargs, expected):
        data = {'name': 'Lem', 'books': NOT_LOADED, 'spam': 42, 1: 'one'}
        self.assertEqual(filter_by_schema_fields(data, Author, **kwargs), expected)

    def test_filter_struct(self):
        result = filter_by_schema_fields(Phone(id=1, number='111'), Address)
        self.assertEqual(result, {})
        result = filter_by_schema_fields(_profile(), Profile, filter_assocs=True)
        self.assertEqual(set(result), {'nickname', 'updated_at', 'address', 'phones'})

    def test_filter_illegal_data(self):
        with self.assertRaises(TypeError):
            filter_by_schema_fields(['name'], Author)

    def test_deep(self):
        data = {
            'nickname': 'lem',
            'spam': 1,
            'address': {'city': 'Krakow', 'country': 'PL'},
            'phones': [{'number': '111', 'extension': '2'}, 'not-a-map'],
        }
        self.assertEqual(deep_filter_by_schema_fields(data, Profile), {
            'nickname': 'lem',
            'address': {'city': 'Krakow'},
            'phones': [{'number': '111'}, 'not-a-map'],
        })

    def test_deep_not_loaded(self):
        data = {'name': 'Lem', 'books': [{'title': 'Eden', 'author': NOT_LOADED, 'x': 1}]}
        self.assertEqual(
            deep_filter_by_schema_fields(data, Author, filter_not_loaded=True),
            {'name': 'Lem', 'books': [{'title': 'Eden'}]})
        self.assertEqual(
            deep_filter_by_schema_fields(data, Author),
            {'name': 'Lem', 'books': [{'title': 'Eden', 'author': NOT_LOADED}]})

    def test_deep_struct_values(self):
        data = {
            'nickname': 'lem',
            'address': Address(city='Krakow'),
            'phones': [Phone(id=1, number='111'), {'number': '222', 'spam': 1}],
        }
        self.assertEqual(deep_filter_by_schema_fields(data, Profile), {
            'nickname': 'lem',
            'address': {'street': None, 'city': 'Krakow', 'postal_code': None},
            'phones': [
                {'id': 1, 'number': '111', 'label': 'home'},
                {'number': '222'},
            ],
        })

    def test_deep_database_struct_values_not_loaded(self):
        session = make_session()
        session.add(Author(name='Lem', books=[Book(title='Eden')]))
        session.commit()
        session.expunge_all()
        book = session.query(Book).one()
        data = {'name': 'Lem', 'books': [book]}
        [book_map] = deep_filter_by_schema_fields(data, Author)['books']
        self.assertIs(book_map['author'], NOT_LOADED)
        self.assertEqual(book_map['title'], 'Eden')
        [book_map] = deep_filter_by_schema_fields(
            data, Author, filter_not_loaded=True)['books']
        self.assertNotIn('author', book_map)
        self.assertEqual(book_map['title'], 'Eden')
        session.close()
