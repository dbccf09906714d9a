import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional

from supabase import create_client, Client

from lib.config import Settings, get_settings
from lib.error_handler import AppError, StorageError

logger = logging.getLogger(__name__)

class Database:
    """Thin async wrapper over the Supabase tables, storage and edge functions."""

    def __init__(self, supabase_client: Optional[Client] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        if supabase_client is None:
            # Initialize Supabase with minimal options
            supabase_client = create_client(
                self.settings.supabase_url,
                self.settings.supabase_key
            )
        self.supabase = supabase_client
        self.reports_table = 'reports'
        self.ngos_table = 'ngos'
        self.lawyers_table = 'lawyers'

    async def _run(self, call: Callable[[], Any]) -> Any:
        # supabase-py is synchronous; keep it off the event loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, call)

    @staticmethod
    def _check(result: Any, action: str) -> Any:
        if hasattr(result, 'error') and result.error:
            raise StorageError(f"Supabase error during {action}: {result.error}")
        return result

    async def insert_report(self, record: Dict[str, Any]) -> Dict[str, Any]:
        try:
            logger.info(f"Inserting report {record.get('id')}")
            result = await self._run(
                lambda: self.supabase.table(self.reports_table).insert(record).execute()
            )
            self._check(result, 'report insert')
            return result.data[0] if result.data else record
        except AppError:
            raise
        except Exception as e:
            logger.error(f"Failed to insert report: {str(e)}")
            raise StorageError(f"Report insert failed: {str(e)}")

    async def update_report(self, report_id: str, fields: Dict[str, Any]) -> None:
        try:
            logger.info(f"Updating report {report_id} with fields {sorted(fields)}")
            result = await self._run(
                lambda: self.supabase.table(self.reports_table)
                .update(fields)
                .eq('id', report_id)
                .execute()
            )
            self._check(result, 'report update')
        except AppError:
            raise
        except Exception as e:
            logger.error(f"Failed to update report {report_id}: {str(e)}")
            raise StorageError(f"Report update failed: {str(e)}")

    async def get_report(self, report_id: str) -> Optional[Dict[str, Any]]:
        return await self._select_one(self.reports_table, 'id', report_id)

    async def get_report_by_share_token(self, token: str) -> Optional[Dict[str, Any]]:
        return await self._select_one(self.reports_table, 'share_token', token)

    async def _select_one(self, table: str, column: str, value: str) -> Optional[Dict[str, Any]]:
        try:
            result = await self._run(
                lambda: self.supabase.table(table)
                .select('*')
                .eq(column, value)
                .limit(1)
                .execute()
            )
            self._check(result, f'{table} lookup')
            return result.data[0] if result.data else None
        except AppError:
            raise
        except Exception as e:
            logger.error(f"Failed to read {table} by {column}: {str(e)}")
            raise StorageError(f"Lookup in {table} failed: {str(e)}")

    async def list_verified(self, table: str) -> List[Dict[str, Any]]:
        """Verified rows of a directory table, best rated first."""
        try:
            logger.info(f"Loading verified entries from {table}")
            result = await self._run(
                lambda: self.supabase.table(table)
                .select('*')
                .eq('verified', True)
                .order('rating', desc=True)
                .execute()
            )
            self._check(result, f'{table} listing')
            return list(result.data or [])
        except AppError:
            raise
        except Exception as e:
            logger.error(f"Failed to list {table}: {str(e)}")
            raise StorageError(f"Listing {table} failed: {str(e)}")

    async def upload_file(self, path: str, data: bytes, content_type: str) -> str:
        """Upload a blob to the audio bucket and return its public URL."""
        bucket = self.settings.audio_bucket
        try:
            logger.info(f"Uploading {len(data)} bytes to {bucket}/{path}")
            storage = self.supabase.storage.from_(bucket)
            await self._run(
                lambda: storage.upload(path, data, {'content-type': content_type})
            )
            return await self._run(lambda: storage.get_public_url(path))
        except Exception as e:
            logger.error(f"Failed to upload {path}: {str(e)}")
            raise StorageError(f"Upload failed: {str(e)}")

    async def invoke_function(self, name: str, body: Dict[str, Any], timeout: Optional[float] = None) -> Dict[str, Any]:
        """Invoke an edge function and decode its JSON reply."""
        logger.info(f"Invoking edge function {name}")
        response = await asyncio.wait_for(
            self._run(
                lambda: self.supabase.functions.invoke(
                    name,
                    invoke_options={'body': body, 'responseType': 'json'}
                )
            ),
            timeout=timeout
        )
        if isinstance(response, (bytes, str)):
            response = json.loads(response)
        return response
