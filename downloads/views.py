import functools
import json
import logging
from pathlib import Path

from django.http import FileResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from downloads.models import DownloadRecord
from downloads.operations import InvalidRequest, get_job_status, submit_download
from downloads.service.catalog import describe_formats, get_catalog
from downloads.service.config import get_public_dir
from downloads.service.errors import CatalogUnavailable
from downloads.utils import client_ip

logger = logging.getLogger(__name__)


def _request_params(request):
    """Parameters from a JSON body, falling back to form/query fields"""
    if request.content_type == 'application/json' and request.body:
        try:
            data = json.loads(request.body)
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
    params = request.GET.dict()
    params.update(request.POST.dict())
    return params


def _error(message, status):
    return JsonResponse({'status': False, 'message': message}, status=status)


def json_errors(view):
    """Turn unexpected exceptions into a JSON 500"""

    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except Exception:
            logger.exception('Unhandled error in %s', view.__name__)
            return _error('Internal Server Error', 500)

    return wrapper


@csrf_exempt
@require_http_methods(['POST'])
@json_errors
def info_view(request):
    """
    List the downloadable formats of a source URL.

    Params:
        url (required): Source page URL

    Returns:
        JSON with title, duration, thumbnail and formats
    """
    url = _request_params(request).get('url')
    if not url:
        return _error('Missing url', 400)

    try:
        catalog = get_catalog(url)
    except CatalogUnavailable as e:
        return _error(str(e), 502)

    return JsonResponse(
        {
            'status': True,
            'data': {
                'title': catalog.title,
                'duration': catalog.duration_seconds,
                'thumbnail': catalog.thumbnail_url,
                'formats': describe_formats(catalog),
            },
        }
    )


@csrf_exempt
@require_http_methods(['POST'])
@json_errors
def download_view(request):
    """
    Queue a fetch+merge job.

    Params:
        url (required): Source page URL
        itag (required): Stream id, also accepted as stream_id
        output (optional): Output container, default mp4
        filename (optional): Filename hint
        resolution (optional): e.g. 720p, guides video selection for audio streams

    Returns:
        202 JSON with the job id
    """
    params = _request_params(request)
    stream_id = params.get('itag')
    if stream_id in (None, ''):
        stream_id = params.get('stream_id')

    try:
        job_id = submit_download(
            url=params.get('url'),
            stream_id=stream_id,
            output=params.get('output') or 'mp4',
            filename=params.get('filename'),
            resolution=params.get('resolution'),
            requester_tag=client_ip(request),
        )
    except InvalidRequest as e:
        return _error(str(e), 400)

    return JsonResponse({'status': True, 'jobId': job_id, 'message': 'Job queued'}, status=202)


@require_http_methods(['GET'])
@json_errors
def job_status_view(request, job_id):
    """Current state, progress and result of a job"""
    status = get_job_status(job_id)
    if status.state == 'not_found':
        return _error('Job not found', 404)

    return JsonResponse({'status': True, **status.to_dict()})


@require_http_methods(['GET'])
def file_download_view(request, filename):
    """Serve a locally published artifact as an attachment"""
    safe_name = Path(filename).name
    if not safe_name or safe_name != filename:
        return _error('Not found', 404)

    path = get_public_dir() / safe_name
    if not path.is_file():
        return _error('Not found', 404)

    return FileResponse(open(path, 'rb'), as_attachment=True, filename=safe_name)


@require_http_methods(['GET'])
@json_errors
def videos_view(request):
    """Completed-download log, newest first"""
    records = [
        {
            'id': record.id,
            'jobId': record.job_id,
            'ip': record.requester_tag,
            'url': record.source_url,
            'resolution': record.resolution,
            'format': record.container,
            'filename': record.filename,
            'fileSize': record.file_size,
            'key': record.storage_key,
            'downloadUrl': record.artifact_location,
            'createdAt': record.created_at.isoformat(),
        }
        for record in DownloadRecord.objects.all()
    ]
    return JsonResponse({'status': True, 'data': records})
