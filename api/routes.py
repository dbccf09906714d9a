from flask import Flask, request, jsonify
import logging
from typing import Optional

from twilio.rest import Client as TwilioClient

from .models import Report
from .services.ai import AIServices, build_ai_services
from .services.directory import DirectoryService, filter_contacts, unique_locations
from .services.lifecycle import ReportLifecycle, StepResult, state_for
from .services.reports import ReportService
from .services.share import ShareService
from lib.config import Settings, get_settings
from lib.database import Database
from lib.error_handler import AppError, ErrorHandler, ReportNotFoundError

logger = logging.getLogger(__name__)

SHARE_PREVIEW_SIZE = 3

def _report_json(report: Optional[Report]):
    return report.model_dump(mode='json') if report else None

def _step_response(result: StepResult):
    body = {
        'status': 'success' if result.ok else 'error',
        'report': _report_json(result.report),
        'wizard': result.state.model_dump(mode='json'),
    }
    if result.link:
        body['share'] = result.link.model_dump(mode='json')
    if not result.ok:
        body['message'] = result.error
    return jsonify(body), result.status_code

def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None,
               ai_services: Optional[AIServices] = None, twilio_client=None) -> Flask:
    settings = settings or get_settings()

    logger.info("Initializing services...")
    database = database or Database(settings=settings)
    ai_services = ai_services or build_ai_services(settings, database)
    if twilio_client is None and settings.sms_enabled:
        logger.info("Initializing Twilio client...")
        twilio_client = TwilioClient(settings.twilio_account_sid, settings.twilio_auth_token)

    report_service = ReportService(
        database,
        ttl_hours=settings.report_ttl_hours,
        enforce_expiry=settings.enforce_report_expiry
    )
    directory_service = DirectoryService(database, sample_fallback=settings.directory_sample_fallback)
    share_service = ShareService(
        report_service,
        public_base_url=settings.public_base_url,
        directory_service=directory_service,
        twilio_client=twilio_client,
        phone_number=settings.twilio_phone_number
    )
    lifecycle = ReportLifecycle(report_service, ai_services, share_service)
    logger.info("All services initialized successfully")

    app = Flask(__name__)
    app.extensions['report_lifecycle'] = lifecycle

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        logger.error(f"Request failed: {error.message}")
        return jsonify({'status': 'error', 'message': error.user_message}), error.status_code

    @app.route('/', methods=['GET'])
    def root():
        """Landing / health check"""
        return jsonify({
            'status': 'healthy',
            'message': 'Record a voice report, review it, and share it anonymously.',
            'report_ttl_hours': settings.report_ttl_hours,
            'ai_backend': settings.ai_backend
        })

    @app.route('/record', methods=['POST'])
    async def record():
        upload = request.files.get('audio')
        if upload is not None:
            audio = upload.read()
            content_type = upload.mimetype
        else:
            audio = request.get_data()
            content_type = request.mimetype
        if not audio:
            logger.error("Missing audio in request data")
            return jsonify({'status': 'error', 'message': 'Missing audio recording'}), 400

        logger.info(f"Received recording: {len(audio)} bytes ({content_type})")
        return _step_response(await lifecycle.start_recording(audio, content_type))

    @app.route('/record/<report_id>/transcribe', methods=['POST'])
    async def transcribe(report_id):
        return _step_response(await lifecycle.transcribe(report_id))

    @app.route('/record/<report_id>/review', methods=['PUT'])
    async def review(report_id):
        data = request.get_json(silent=True) or {}
        if not data.get('transcript'):
            return jsonify({'status': 'error', 'message': 'Missing transcript'}), 400
        clauses = data.get('legal_clauses') or []
        if not isinstance(clauses, list):
            return jsonify({'status': 'error', 'message': 'legal_clauses must be a list'}), 400
        return _step_response(await lifecycle.save_review(
            report_id,
            transcript=data['transcript'],
            expanded_transcript=data.get('expanded_transcript') or '',
            legal_clauses=[str(clause) for clause in clauses]
        ))

    @app.route('/record/<report_id>/voice', methods=['POST'])
    async def voice(report_id):
        return _step_response(await lifecycle.generate_voice(report_id))

    @app.route('/record/<report_id>/video', methods=['POST'])
    async def video(report_id):
        return _step_response(await lifecycle.generate_video(report_id))

    @app.route('/record/<report_id>/complete', methods=['POST'])
    async def complete(report_id):
        return _step_response(await lifecycle.complete_generation(report_id))

    @app.route('/reports/<report_id>', methods=['GET'])
    async def get_report(report_id):
        report = await report_service.fetch(report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        return jsonify({
            'status': 'success',
            'report': _report_json(report),
            'wizard': state_for(report).model_dump(mode='json')
        })

    @app.route('/directory', methods=['GET'])
    async def directory():
        search_term = request.args.get('q', '')
        location_filter = request.args.get('location', '')
        contact_type = request.args.get('type', 'ngos')
        if contact_type not in ('ngos', 'lawyers'):
            return jsonify({'status': 'error', 'message': "type must be 'ngos' or 'lawyers'"}), 400

        loaded = await directory_service.load()
        contacts = loaded.ngos if contact_type == 'ngos' else loaded.lawyers
        results = filter_contacts(contacts, search_term, location_filter)
        return jsonify({
            'status': 'error' if loaded.error else 'success',
            'message': loaded.error,
            'type': contact_type,
            'counts': {'ngos': len(loaded.ngos), 'lawyers': len(loaded.lawyers)},
            'locations': unique_locations([*loaded.ngos, *loaded.lawyers]),
            'results': [contact.model_dump() for contact in results]
        }), 502 if loaded.error else 200

    @app.route('/share', methods=['GET'])
    async def share():
        report_id = request.args.get('reportId')
        if not report_id:
            return jsonify({'status': 'error', 'message': 'No report ID provided'}), 400

        result = await lifecycle.share(report_id)
        response, status_code = _step_response(result)
        if not result.ok:
            return response, status_code

        # Contacts are a convenience here; a failed load does not block the link
        loaded = await directory_service.load()
        body = response.get_json()
        body['contacts'] = {
            'ngos': [ngo.model_dump() for ngo in loaded.ngos[:SHARE_PREVIEW_SIZE]],
            'lawyers': [lawyer.model_dump() for lawyer in loaded.lawyers[:SHARE_PREVIEW_SIZE]]
        }
        return jsonify(body), status_code

    @app.route('/share/<report_id>/send', methods=['POST'])
    async def send_share(report_id):
        data = request.get_json(silent=True) or {}
        contact_ids = data.get('contact_ids') or []
        if not isinstance(contact_ids, list):
            return jsonify({'status': 'error', 'message': 'contact_ids must be a list'}), 400
        try:
            outcome = await share_service.send_to_contacts(report_id, [str(c) for c in contact_ids])
        except AppError:
            raise
        except Exception as e:
            message = ErrorHandler.handle_sms_error(e)
            return jsonify({'status': 'error', 'message': message}), 502

        if not outcome['failed']:
            return jsonify({'status': 'success', **outcome})
        # Report who was reached so a retry only targets the failures
        message = "Message couldn't be sent. Please try again later."
        if outcome['sent']:
            return jsonify({'status': 'partial', 'message': message, **outcome}), 207
        return jsonify({'status': 'error', 'message': message, **outcome}), 502

    @app.route('/shared/<token>', methods=['GET'])
    async def shared(token):
        report = await share_service.resolve(token)
        if report is None:
            return jsonify({'status': 'error', 'message': 'Report not found or has expired'}), 404
        # Only what the recipient needs; no internal ids
        return jsonify({
            'status': 'success',
            'report': report.model_dump(
                mode='json',
                include={'transcript', 'expanded_transcript', 'legal_clauses',
                         'generated_voice_url', 'generated_video_url', 'created_at', 'expires_at'}
            )
        })

    return app
