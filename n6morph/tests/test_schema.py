# Copyright (c) 2013-2025 NASK. All rights reserved.

import copy
import datetime
import pickle
import unittest

from sqlalchemy import (
    ARRAY,
    JSON,
    DateTime,
    Float,
    Integer,
    Interval,
    LargeBinary,
    Numeric,
    String,
    Time,
    Uuid,
)
from sqlalchemy.types import (
    NullType,
    TypeDecorator,
)
from unittest_expander import (
    expand,
    foreach,
    param,
)

from n6morph.config import configure
from n6morph.exceptions import SchemaError
from n6morph.fields import (
    AnyField,
    BytesField,
    DateField,
    DateTimeField,
    DecimalField,
    EmailSimplifiedField,
    FlagField,
    FloatField,
    IntegerField,
    JSONField,
    ListField,
    PyEnumField,
    TimeField,
    UnicodeEnumField,
    UnicodeField,
    UnicodeLimitedField,
    UUIDField,
)
from n6morph.schema import (
    MANY,
    NOT_LOADED,
    ONE,
    AssocInfo,
    EmbedInfo,
    EmbeddedSchema,
    embeds_one,
    field_for_sqla_type,
    get_schema_info,
    is_struct,
)
from n6morph.tests._models import (
    Address,
    Author,
    Book,
    Genre,
    Phone,
    Profile,
    TreeNode,
    make_session,
)


class _UpperCaseString(TypeDecorator):
    impl = String(10)
    cache_ok = True


class TestNotLoaded(unittest.TestCase):

    def test_singleton(self):
        self.assertIs(type(NOT_LOADED)(), NOT_LOADED)
        self.assertIs(copy.deepcopy(NOT_LOADED), NOT_LOADED)
        self.assertIs(pickle.loads(pickle.dumps(NOT_LOADED)), NOT_LOADED)

    def test_repr_and_bool(self):
        self.assertEqual(repr(NOT_LOADED), 'NOT_LOADED')
        self.assertFalse(NOT_LOADED)


class TestEmbeddedSchemaInfo(unittest.TestCase):

    def test_fields_and_embeds(self):
        info = get_schema_info(Profile)
        self.assertIs(info.schema, Profile)
        self.assertTrue(info.is_embedded)
        self.assertEqual(list(info.fields), ['nickname', 'updated_at'])
        self.assertEqual(info.embeds, {
            'address': EmbedInfo(Address, ONE),
            'phones': EmbedInfo(Phone, MANY),
        })
        self.assertEqual(info.assocs, {})
        self.assertEqual(info.primary_key, ())
        self.assertEqual(info.all_keys, {'nickname', 'updated_at', 'address', 'phones'})

    def test_primary_key(self):
        self.assertEqual(get_schema_info(Phone).primary_key, ('id',))

    def test_cached_and_instance_accepted(self):
        info = get_schema_info(Profile)
        self.assertIs(get_schema_info(Profile), info)
        self.assertIs(get_schema_info(Profile()), info)

    def test_self_reference(self):
        info = get_schema_info(TreeNode)
        self.assertEqual(info.embeds, {'children': EmbedInfo(TreeNode, MANY)})

    def test_subclass_overrides_declarations(self):
        class Base(EmbeddedSchema):
            a = UnicodeField()
            b = UnicodeField()

        class Sub(Base):
            b = IntegerField()
            c = embeds_one(Address)

        info = get_schema_info(Sub)
        self.assertEqual(list(info.fields), ['a', 'b'])
        self.assertIsInstance(info.fields['b'], IntegerField)
        self.assertEqual(list(info.embeds), ['c'])

    def test_timestamps(self):
        class WithOwnTimestamps(EmbeddedSchema):
            __timestamps__ = ('created',)
            created = DateTimeField()
            updated_at = DateTimeField()

        self.assertEqual(get_schema_info(Profile).timestamps, ('updated_at',))
        self.assertEqual(get_schema_info(WithOwnTimestamps).timestamps, ('created',))
        configure(settings={'n6morph.timestamp_fields': 'nickname'})
        try:
            self.assertEqual(get_schema_info(Profile).timestamps, ('nickname',))
        finally:
            configure()

    def test_new_struct(self):
        phone = get_schema_info(Phone).new_struct()
        self.assertEqual(phone, Phone(id=None, number=None, label='home'))
        profile = get_schema_info(Profile).new_struct()
        self.assertIsNone(profile.address)
        self.assertEqual(profile.phones, [])

    def test_embed_schema_must_be_embedded_schema(self):
        class Wrong(EmbeddedSchema):
            x = embeds_one(Book)

        with self.assertRaises(SchemaError):
            get_schema_info(Wrong)


class TestEmbeddedSchemaStructs(unittest.TestCase):

    def test_init(self):
        profile = Profile(nickname='x', address=Address(city='Warsaw'))
        self.assertEqual(profile.nickname, 'x')
        self.assertEqual(profile.address, Address(city='Warsaw'))
        self.assertIsNone(profile.address.street)
        self.assertEqual(profile.phones, [])

    def test_init_illegal_kwarg(self):
        with self.assertRaises(TypeError):
            Profile(spam=42)

    def test_eq(self):
        self.assertEqual(Address(city='A'), Address(city='A'))
        self.assertNotEqual(Address(city='A'), Address(city='B'))
        self.assertNotEqual(Address(city='A'), {'city': 'A'})

    def test_unhashable(self):
        with self.assertRaises(TypeError):
            hash(Address())

    def test_repr(self):
        self.assertEqual(repr(Phone(id=1, number='123')),
                         "Phone(id=1, number='123', label='home')")


@expand
class TestMappedSchemaInfo(unittest.TestCase):

    def test_author(self):
        info = get_schema_info(Author)
        self.assertIs(info.schema, Author)
        self.assertFalse(info.is_embedded)
        self.assertEqual(list(info.fields), [
            'id', 'name', 'email', 'active', 'born_on', 'rating', 'bio',
            'inserted_at', 'updated_at'])
        self.assertEqual(info.embeds, {
            'home_address': EmbedInfo(Address, ONE),
            'previous_addresses': EmbedInfo(Address, MANY),
        })
        self.assertEqual(info.assocs, {'books': AssocInfo(Book, MANY)})
        self.assertEqual(info.primary_key, ('id',))
        self.assertEqual(info.timestamps, ('inserted_at', 'updated_at'))

    def test_author_fields(self):
        fields = get_schema_info(Author).fields
        self.assertIsInstance(fields['id'], IntegerField)
        self.assertIs(fields['id'].primary_key, True)
        self.assertIsInstance(fields['name'], UnicodeLimitedField)
        self.assertEqual(fields['name'].max_length, 32)
        self.assertIs(type(fields['email']), EmailSimplifiedField)
        self.assertIsInstance(fields['active'], FlagField)
        self.assertIs(fields['active'].default, True)
        self.assertIsInstance(fields['born_on'], DateField)
        self.assertIsInstance(fields['rating'], DecimalField)
        self.assertIs(type(fields['bio']), UnicodeField)
        self.assertIsInstance(fields['inserted_at'], DateTimeField)

    def test_book(self):
        info = get_schema_info(Book)
        self.assertEqual(info.assocs, {'author': AssocInfo(Author, ONE)})
        self.assertIsInstance(info.fields['genre'], PyEnumField)
        self.assertIs(info.fields['genre'].enum_class, Genre)
        self.assertIsInstance(info.fields['kind'], UnicodeEnumField)
        self.assertEqual(info.fields['kind'].enum_values, ('hardcover', 'paperback'))

    def test_new_struct(self):
        author = get_schema_info(Author).new_struct()
        self.assertIsInstance(author, Author)
        self.assertIs(author.active, True)
        self.assertIsNone(author.name)
        self.assertEqual(author.books, [])

    def test_get_value_and_is_loaded(self):
        session = make_session()
        session.add(Author(name='Lem', books=[Book(title='Solaris')]))
        session.commit()
        session.expunge_all()
        author = session.query(Author).one()
        info = get_schema_info(author)
        self.assertFalse(info.is_loaded(author, 'books'))
        self.assertIs(info.get_value(author, 'books'), NOT_LOADED)
        self.assertEqual(info.get_value(author, 'name'), 'Lem')
        self.assertTrue(info.has_identity(author))
        author.books
        self.assertTrue(info.is_loaded(author, 'books'))
        self.assertEqual([b.title for b in info.get_value(author, 'books')], ['Solaris'])

    def test_transient_struct_assocs_are_loaded(self):
        author = Author(name='Lem')
        info = get_schema_info(author)
        self.assertTrue(info.is_loaded(author, 'books'))
        self.assertFalse(info.has_identity(author))
        self.assertEqual(info.get_value(author, 'books'), [])

    @foreach(int, 'foo', object())
    def test_not_a_schema(self, obj):
        with self.assertRaises(SchemaError):
            get_schema_info(obj)

    def test_embedded_schema_base_is_not_a_schema(self):
        with self.assertRaises(SchemaError):
            get_schema_info(EmbeddedSchema)


@expand
class Test_field_for_sqla_type(unittest.TestCase):

    @foreach(
        param(sqla_type=Integer(), field_class=IntegerField),
        param(sqla_type=Float(), field_class=FloatField),
        param(sqla_type=Float(asdecimal=True), field_class=DecimalField),
        param(sqla_type=Numeric(10, 2), field_class=DecimalField),
        param(sqla_type=Numeric(asdecimal=False), field_class=FloatField),
        param(sqla_type=String(), field_class=UnicodeField),
        param(sqla_type=String(10), field_class=UnicodeLimitedField),
        param(sqla_type=Time(), field_class=TimeField),
        param(sqla_type=Uuid(), field_class=UUIDField),
        param(sqla_type=LargeBinary(), field_class=BytesField),
        param(sqla_type=JSON(), field_class=JSONField),
        param(sqla_type=ARRAY(Integer), field_class=ListField),
        param(sqla_type=_UpperCaseString(), field_class=UnicodeLimitedField),
        param(sqla_type=Interval(), field_class=AnyField),
        param(sqla_type=NullType(), field_class=AnyField),
    )
    def test(self, sqla_type, field_class):
        field = field_for_sqla_type(sqla_type)
        self.assertIs(type(field), field_class)

    def test_array_item_field(self):
        field = field_for_sqla_type(ARRAY(Integer))
        self.assertIsInstance(field.item_field, IntegerField)
        self.assertEqual(field.clean_value(['1', 2]), [1, 2])

    def test_uuid_as_str(self):
        field = field_for_sqla_type(Uuid(as_uuid=False))
        self.assertIs(field.as_uuid, False)

    def test_field_kwargs_passed(self):
        field = field_for_sqla_type(Integer(), primary_key=True, default=1)
        self.assertIs(field.primary_key, True)
        self.assertEqual(field.default, 1)

    def test_unsupported_type_warning(self):
        with self.assertLogs('n6morph.schema', 'WARNING'):
            field_for_sqla_type(NullType(), column_name='duration')

    def test_datetime_timezone(self):
        field = field_for_sqla_type(DateTime(timezone=True))
        self.assertIs(field.timezone_aware, True)
        self.assertEqual(
            field.clean_value('2014-04-01T01:07:42+02:00'),
            datetime.datetime(2014, 3, 31, 23, 7, 42, tzinfo=datetime.timezone.utc))


class Test_is_struct(unittest.TestCase):

    def test(self):
        self.assertTrue(is_struct(Address()))
        self.assertTrue(is_struct(Author()))
        self.assertFalse(is_struct(Address))
        self.assertFalse(is_struct(Author))
        self.assertFalse(is_struct({'city': 'x'}))
        self.assertFalse(is_struct(None))


class TestEmbeddedColumn(unittest.TestCase):

    def test_round_trip(self):
        session = make_session()
        author = Author(
            name='Lem',
            home_address=Address(street='Kliny', city='Krakow', postal_code='30-000'),
            previous_addresses=[Address(city='Lwow')])
        session.add(author)
        session.commit()
        session.expunge_all()
        loaded = session.query(Author).one()
        self.assertEqual(loaded.home_address,
                         Address(street='Kliny', city='Krakow', postal_code='30-000'))
        self.assertEqual(loaded.previous_addresses, [Address(city='Lwow')])

    def test_null(self):
        session = make_session()
        session.add(Author(name='Lem'))
        session.commit()
        session.expunge_all()
        loaded = session.query(Author).one()
        self.assertIsNone(loaded.home_address)
        self.assertEqual(loaded.previous_addresses, [])
