"""Database fixtures and request builders for sqldatatables tests (shared)."""

import copy
import pytest
from datetime import date, datetime
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Region, Country, Role, User, UserLogin, Profile, Image


COLUMNS = ['id', 'name', 'email', 'created_at', 'country', 'user_logins', 'settings', 'profile', 'roles']


def request_params(**overrides):
    """Nested DataTables request for the User grid; columns follow COLUMNS."""
    params = {
        'draw': 1,
        'columns': [{'data': name, 'search': {'value': ''}} for name in COLUMNS],
        'start': 0,
        'length': 20,
        'search': {'value': ''},
        'order': [{'column': 1, 'dir': 'asc'}],
    }
    params.update(copy.deepcopy(overrides))
    return params


def column_search(name, value, **overrides):
    """Request params with a single per-column search value."""
    params = request_params(**overrides)
    params['columns'][COLUMNS.index(name)]['search']['value'] = value
    return params


def ordered_by(name, direction='asc', **overrides):
    return request_params(order=[{'column': COLUMNS.index(name), 'dir': direction}], **overrides)


async def create_sample_geo(session: AsyncSession):
    """Create and commit regions and countries."""
    europe, asia = Region(name='Europe'), Region(name='Asia')
    session.add_all([europe, asia])
    await session.flush()
    countries = [
        Country(name='Greece', founded_at=date(1995, 6, 15), region_id=europe.id),
        Country(name='Japan', founded_at=date(1990, 1, 1), region_id=asia.id),
        Country(name='Chile', founded_at=date(2001, 12, 31), region_id=None),
    ]
    session.add_all(countries)
    await session.flush()
    await session.commit()
    return countries


async def create_sample_users(session: AsyncSession, countries):
    """Create and commit users with logins, profiles and roles."""
    greece, japan, chile = countries
    admin, editor, viewer = Role(name='admin'), Role(name='editor'), Role(name='viewer')
    users = [
        User(name='George Papakitsos', email='papakitsos_george@yahoo.gr', country_id=greece.id,
             settings={'is_admin': True, 'nickname': 'papaki'}, created_at=datetime(1981, 4, 23, 10, 0),
             roles=[admin, editor]),
        User(name='Alice Johnson', email='alice@example.com', country_id=japan.id,
             settings={'nickname': 'ally'}, created_at=datetime(2020, 1, 15, 9, 30), roles=[editor]),
        User(name='Bob Smith', email='bob@example.com', country_id=chile.id,
             settings=None, created_at=datetime(2021, 6, 1, 12, 0)),
        User(name='Charlie Brown', email='charlie@example.com', country_id=None,
             settings=None, created_at=datetime(2022, 3, 10, 8, 15), roles=[viewer]),
        User(name='Dave Smithers', email='dave@example.com', country_id=greece.id,
             settings={'theme': 'dark'}, created_at=datetime(2023, 7, 4, 18, 45)),
        User(name='Eve Adams', email='eve@example.com', country_id=None,
             settings=None, created_at=datetime(2024, 2, 29, 23, 59)),
    ]
    session.add_all(users)
    await session.flush()
    george, alice, bob, charlie, dave, eve = users
    logins = {george: 12, alice: 3, bob: 1, charlie: 0, dave: 5, eve: 2}
    for user, n in logins.items():
        session.add_all([UserLogin(user_id=user.id) for _ in range(n)])
    session.add_all([
        Profile(user_id=george.id, nickname='gpapak', bio='maintainer'),
        Profile(user_id=alice.id, nickname='ally', bio='editor in chief'),
        Profile(user_id=charlie.id, nickname='chuck', bio=None),
    ])
    await session.flush()
    await session.commit()
    return users


async def create_sample_images(session: AsyncSession, users, countries):
    """Create and commit polymorphic images."""
    george, alice = users[0], users[1]
    greece, japan = countries[0], countries[1]
    images = [
        Image(path='george.png', imageable_type='user', imageable_id=george.id),
        Image(path='alice.png', imageable_type='user', imageable_id=alice.id),
        Image(path='japan.png', imageable_type='country', imageable_id=japan.id),
        Image(path='greece.png', imageable_type='country', imageable_id=greece.id),
    ]
    session.add_all(images)
    await session.flush()
    await session.commit()
    return images


@pytest.fixture(scope="function")
async def populated_db(db_session: AsyncSession):
    countries = await create_sample_geo(db_session)
    users = await create_sample_users(db_session, countries)
    images = await create_sample_images(db_session, users, countries)
    data = {
        'countries': countries,
        'users': users,
        'images': images,
        'ids': {u.name.split()[0].lower(): u.id for u in users},
    }
    # Queries under test must load rows themselves, not reuse the seeded instances
    db_session.expunge_all()
    return data
