# services/file_service/create_bucket.py
from common.config.settings import settings
from .minio_client import get_minio_client

def create_bucket():
    client = get_minio_client()
    bucket = settings.MINIO_BUCKET
    if not client.bucket_exists(bucket):
        client.make_bucket(bucket)
        print(f"Bucket '{bucket}' created.")
    else:
        print(f"Bucket '{bucket}' already exists.")

if __name__ == "__main__":
    create_bucket()
