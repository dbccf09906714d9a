import asyncio
import pytest

from api.models import Lawyer, NGO
from api.services.directory import (
    DirectoryService,
    SAMPLE_LAWYERS,
    SAMPLE_NGOS,
    filter_contacts,
    unique_locations,
)

NGO_ROWS = [
    {'id': 'n1', 'name': 'Legal Aid Trust', 'location': 'Quetta, Balochistan', 'expertise': ['Legal Aid'],
     'verified': True, 'rating': 4.1, 'contact_email': 'a@trust.pk', 'phone_number': '+92-81-000-0001'},
    {'id': 'n2', 'name': 'Safe Homes', 'location': 'Karachi, Sindh', 'expertise': ['Emergency Shelter'],
     'verified': True, 'rating': 4.6, 'contact_email': 'b@safe.pk'},
    {'id': 'n3', 'name': 'Unverified Group', 'location': 'Karachi, Sindh', 'expertise': [],
     'verified': False, 'rating': 5.0, 'contact_email': 'c@x.pk'},
]

LAWYER_ROWS = [
    {'id': 'l1', 'name': 'Advocate Hina Raza', 'location': 'Lahore, Punjab',
     'specialization': ['Family Law'], 'experience': 9, 'verified': True, 'rating': 4.4,
     'contact_email': 'hina@law.pk', 'bar_council': 'Punjab Bar Council'},
]

def test_empty_filters_return_input_unchanged():
    contacts = [*SAMPLE_NGOS, *SAMPLE_LAWYERS]
    assert filter_contacts(contacts, '', '') == contacts

def test_filter_is_case_insensitive_on_name_and_skills():
    by_name = filter_contacts(SAMPLE_NGOS, 'aurat', '')
    assert [ngo.name for ngo in by_name] == ['Aurat Foundation']

    by_skill = filter_contacts(SAMPLE_LAWYERS, 'FAMILY', '')
    assert [lawyer.name for lawyer in by_skill] == ['Advocate Fatima Khan', 'Advocate Zainab Ali']

def test_filter_combines_search_and_location():
    results = filter_contacts(SAMPLE_NGOS, 'legal aid', 'punjab')
    assert [ngo.id for ngo in results] == ['3']
    assert filter_contacts(SAMPLE_NGOS, 'legal aid', 'balochistan') == []

def test_filter_is_pure():
    contacts = list(SAMPLE_LAWYERS)
    first = filter_contacts(contacts, 'law', 'karachi')
    second = filter_contacts(contacts, 'law', 'karachi')
    assert first == second
    assert contacts == list(SAMPLE_LAWYERS)

def test_unique_locations_uses_region_after_comma():
    contacts = [*SAMPLE_NGOS, *SAMPLE_LAWYERS]
    assert unique_locations(contacts) == ['Sindh', 'ICT', 'Punjab']

    single = NGO(id='x', name='City Help', location='Peshawar')
    assert unique_locations([single]) == ['Peshawar']

@pytest.mark.asyncio
async def test_load_returns_verified_contacts_best_rated_first(directory_service, fake_supabase):
    fake_supabase.tables['ngos'].extend(dict(row) for row in NGO_ROWS)
    fake_supabase.tables['lawyers'].extend(dict(row) for row in LAWYER_ROWS)

    directory = await directory_service.load()

    assert directory.error is None
    assert directory.is_loading is False
    assert [ngo.id for ngo in directory.ngos] == ['n2', 'n1']
    assert all(isinstance(ngo, NGO) for ngo in directory.ngos)
    assert isinstance(directory.lawyers[0], Lawyer)
    assert directory.lawyers[0].skills == ['Family Law']

@pytest.mark.asyncio
async def test_load_fails_entirely_when_either_fetch_fails(directory_service, fake_supabase):
    fake_supabase.tables['ngos'].extend(dict(row) for row in NGO_ROWS)
    fake_supabase.failing_tables['lawyers'] = ConnectionError('network down')

    directory = await directory_service.load()

    assert directory.ngos == []
    assert directory.lawyers == []
    assert directory.is_loading is False
    assert directory.error == 'Failed to load directory. Please try again.'

@pytest.mark.asyncio
async def test_load_waits_for_both_fetches(database):
    release = asyncio.Event()
    finished = []

    class SlowDirectory(DirectoryService):
        async def get_ngos(self):
            await release.wait()
            finished.append('ngos')
            return list(SAMPLE_NGOS)

        async def get_lawyers(self):
            finished.append('lawyers')
            return list(SAMPLE_LAWYERS)

    task = asyncio.ensure_future(SlowDirectory(database).load())
    for _ in range(5):
        await asyncio.sleep(0)
    assert not task.done()
    assert finished == ['lawyers']

    release.set()
    directory = await task
    assert finished == ['lawyers', 'ngos']
    assert len(directory.ngos) == 3 and len(directory.lawyers) == 3

@pytest.mark.asyncio
async def test_sample_fallback_when_backend_is_empty(database):
    directory = await DirectoryService(database, sample_fallback=True).load()
    assert [ngo.name for ngo in directory.ngos][:1] == ['Women Protection Alliance']
    assert len(directory.lawyers) == 3

def test_find_contact_by_kind_prefixed_id():
    from api.services.directory import Directory

    directory = Directory(ngos=list(SAMPLE_NGOS), lawyers=list(SAMPLE_LAWYERS))
    assert directory.find('lawyer:2').name == 'Advocate Sarah Ahmed'
    assert directory.find('ngo:2').name == 'Aurat Foundation'
    assert directory.find('missing') is None
