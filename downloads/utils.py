import os
from datetime import datetime


def write_log(log_path, message):
    """Append message to log file with timestamp"""
    if log_path:
        os.makedirs(os.path.dirname(log_path), exist_ok=True)
        with open(log_path, 'a') as f:
            timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
            f.write(f'[{timestamp}] {message}\n')


def format_resolution(target_height):
    """Resolution label stored with completed downloads"""
    if not target_height:
        return ''
    return f'{target_height}p'


def client_ip(request):
    """Requester tag for a web request: first X-Forwarded-For hop or REMOTE_ADDR"""
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', '')
