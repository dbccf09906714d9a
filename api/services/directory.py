import asyncio
import logging
from typing import List, Optional, Sequence, Union

from api.models import Lawyer, NGO, contact_adapter
from lib.database import Database
from lib.error_handler import ErrorHandler

logger = logging.getLogger(__name__)

SAMPLE_NGOS = [
    NGO(
        id='1',
        name='Women Protection Alliance',
        description='Dedicated to supporting women facing domestic violence and harassment.',
        location='Karachi, Sindh',
        expertise=['Domestic Violence', 'Legal Aid', 'Counseling', 'Emergency Shelter'],
        contact_email='help@wpa.org.pk',
        phone_number='+92-21-123-4567',
        verified=True,
        rating=4.8,
    ),
    NGO(
        id='2',
        name='Aurat Foundation',
        description="Working for women's rights and gender equality across Pakistan.",
        location='Islamabad, ICT',
        expertise=['Women Rights', 'Legal Support', 'Advocacy', 'Training'],
        contact_email='support@af.org.pk',
        phone_number='+92-51-987-6543',
        verified=True,
        rating=4.9,
    ),
    NGO(
        id='3',
        name='Shirkat Gah',
        description="Women's resource centre working on women's rights and empowerment.",
        location='Lahore, Punjab',
        expertise=['Legal Aid', 'Research', 'Training', 'Publications'],
        contact_email='info@shirkatgah.org',
        verified=True,
        rating=4.7,
    ),
]

SAMPLE_LAWYERS = [
    Lawyer(
        id='1',
        name='Advocate Fatima Khan',
        specialization=['Family Law', 'Domestic Violence', 'Women Rights'],
        location='Karachi, Sindh',
        experience=12,
        contact_email='fatima.khan@law.pk',
        phone_number='+92-21-456-7890',
        verified=True,
        rating=4.9,
        bar_council='Sindh Bar Council',
    ),
    Lawyer(
        id='2',
        name='Advocate Sarah Ahmed',
        specialization=['Criminal Law', 'Harassment Cases', 'Civil Rights'],
        location='Islamabad, ICT',
        experience=8,
        contact_email='sarah.ahmed@advocates.pk',
        phone_number='+92-51-234-5678',
        verified=True,
        rating=4.8,
        bar_council='Islamabad Bar Association',
    ),
    Lawyer(
        id='3',
        name='Advocate Zainab Ali',
        specialization=['Family Law', 'Property Rights', 'Legal Aid'],
        location='Lahore, Punjab',
        experience=15,
        contact_email='zainab.ali@lawfirm.pk',
        verified=True,
        rating=4.7,
        bar_council='Punjab Bar Council',
    ),
]

ContactType = Union[NGO, Lawyer]

def filter_contacts(contacts: Sequence[ContactType], search_term: str = '', location_filter: str = '') -> List[ContactType]:
    """Contacts whose name or skills contain the term and whose location contains the filter."""
    term = (search_term or '').lower()
    location = (location_filter or '').lower()

    def matches(contact: ContactType) -> bool:
        matches_search = term in contact.name.lower() or any(
            term in skill.lower() for skill in contact.skills
        )
        matches_location = location == '' or location in contact.location.lower()
        return matches_search and matches_location

    return [contact for contact in contacts if matches(contact)]

def unique_locations(contacts: Sequence[ContactType]) -> List[str]:
    locations = []
    for contact in contacts:
        parts = contact.location.split(',')
        region = parts[1].strip() if len(parts) > 1 and parts[1].strip() else parts[0].strip()
        if region and region not in locations:
            locations.append(region)
    return locations

class Directory:
    """Result of a directory load."""

    def __init__(self, ngos: Optional[List[NGO]] = None, lawyers: Optional[List[Lawyer]] = None,
                 error: Optional[str] = None):
        self.ngos = ngos or []
        self.lawyers = lawyers or []
        self.error = error
        self.is_loading = False

    def find(self, contact_id: str) -> Optional[ContactType]:
        """Look up a contact by "<kind>:<id>" or a bare id."""
        kind, _, bare_id = contact_id.rpartition(':')
        for contact in [*self.ngos, *self.lawyers]:
            if contact.id == bare_id and (not kind or contact.kind == kind):
                return contact
        return None

class DirectoryService:
    def __init__(self, database: Database, sample_fallback: bool = True):
        self.db = database
        self.sample_fallback = sample_fallback
        self.error_handler = ErrorHandler()

    async def get_ngos(self) -> List[NGO]:
        rows = await self.db.list_verified(self.db.ngos_table)
        return [contact_adapter.validate_python({**row, 'kind': 'ngo'}) for row in rows]

    async def get_lawyers(self) -> List[Lawyer]:
        rows = await self.db.list_verified(self.db.lawyers_table)
        return [contact_adapter.validate_python({**row, 'kind': 'lawyer'}) for row in rows]

    async def load(self) -> Directory:
        """Fetch NGOs and lawyers together; if either fails the whole load fails."""
        try:
            ngos, lawyers = await asyncio.gather(self.get_ngos(), self.get_lawyers())
        except Exception as e:
            return Directory(error=self.error_handler.handle_directory_error(e))

        if self.sample_fallback:
            if not ngos:
                logger.info("No NGOs in directory, using sample entries")
                ngos = list(SAMPLE_NGOS)
            if not lawyers:
                logger.info("No lawyers in directory, using sample entries")
                lawyers = list(SAMPLE_LAWYERS)

        logger.info(f"Directory loaded: {len(ngos)} NGOs, {len(lawyers)} lawyers")
        return Directory(ngos=ngos, lawyers=lawyers)
