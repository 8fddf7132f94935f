"""
Publishing of finished artifacts.

Uploads to S3-compatible object storage when a bucket and credentials are
configured, otherwise moves the file into the public directory served by
the ``/api/downloads/`` view.
"""

import shutil
from pathlib import Path
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from downloads.service.config import get_public_base_url, get_public_dir, get_s3_config
from downloads.service.errors import PublishFailed


class LocalPublisher:
    """Serve artifacts from MERGE_PUBLIC_DIR"""

    def __init__(self, public_dir=None, base_url=None):
        self.public_dir = Path(public_dir) if public_dir else get_public_dir()
        self.base_url = base_url if base_url is not None else get_public_base_url()

    def publish(self, local_path, key, logger=None):
        filename = Path(key).name
        destination = self.public_dir / filename
        try:
            self.public_dir.mkdir(parents=True, exist_ok=True)
            shutil.move(str(local_path), str(destination))
        except OSError as e:
            raise PublishFailed(f'Could not publish {filename}: {e}') from e

        if logger:
            logger(f'Published to {destination}')
        return f'{self.base_url}/api/downloads/{quote(filename)}'


class S3Publisher:
    """Upload artifacts to a bucket and hand out presigned URLs"""

    def __init__(self, config, client=None):
        self.config = config
        self.client = client or self.build_client()

    def build_client(self):
        kwargs = {
            'aws_access_key_id': self.config['access_key_id'],
            'aws_secret_access_key': self.config['secret_access_key'],
        }
        if self.config.get('region'):
            kwargs['region_name'] = self.config['region']
        if self.config.get('endpoint'):
            kwargs['endpoint_url'] = self.config['endpoint']
        return boto3.client('s3', **kwargs)

    def publish(self, local_path, key, logger=None):
        bucket = self.config['bucket']
        try:
            self.client.upload_file(str(local_path), bucket, key)
            url = self.client.generate_presigned_url(
                'get_object',
                Params={'Bucket': bucket, 'Key': key},
                ExpiresIn=self.config['expires'],
            )
        except (BotoCoreError, ClientError, OSError) as e:
            raise PublishFailed(f'Upload of {key} to {bucket} failed: {e}') from e

        if logger:
            logger(f'Uploaded to s3://{bucket}/{key}')
        return url


def get_publisher():
    """Pick the publisher matching the current configuration"""
    config = get_s3_config()
    if config:
        return S3Publisher(config)
    return LocalPublisher()


def publish(local_path, key, logger=None):
    """
    Publish a local artifact under a storage key.

    Returns:
        str: URL the artifact can be downloaded from

    Raises:
        PublishFailed
    """
    return get_publisher().publish(local_path, key, logger=logger)
