# clients/bulk_upload.py
"""
Uploads a directory tree to the file service.

Every directory's files are sent in one request, tagged with the names of the
directories from the root down to that directory:

    python -m clients.bulk_upload http://localhost:8000 sample
"""
import argparse
import os
import sys
from contextlib import ExitStack

import requests

from common.utils.logger import get_logger
from services.file_service.tags import normalize, to_tag_string

logger = get_logger("bulk_upload")


def upload_files(base_url, paths, tags, session=None, timeout=300):
    """POSTs `paths` to /api/files with the given tags and returns the parsed response."""
    session = session or requests
    tag_string = to_tag_string(tags)
    logger.info(f"Using tags=\"{tag_string}\" to upload {len(paths)} file(s)")

    with ExitStack() as stack:
        files_data = [
            ("files", (os.path.basename(p), stack.enter_context(open(p, "rb"))))
            for p in paths
        ]
        resp = session.post(
            f"{base_url.rstrip('/')}/api/files",
            files=files_data,
            data={"tags": tag_string},
            timeout=timeout,
        )
    resp.raise_for_status()
    return resp.json()


def upload_dir(base_url, directory, parent_tags=(), session=None):
    """Uploads `directory` and its subdirectories; returns the uploaded file views."""
    tags = list(parent_tags) + normalize(os.path.basename(os.path.normpath(directory)))
    logger.info(f"Processing {directory} with tags={','.join(tags)}")

    entries = sorted(os.scandir(directory), key=lambda e: e.name)
    files = [e.path for e in entries if e.is_file()]
    subdirs = [e.path for e in entries if e.is_dir()]

    uploaded = []
    if files:
        uploaded.extend(upload_files(base_url, files, tags, session=session)["files"])
    for sub in subdirs:
        uploaded.extend(upload_dir(base_url, sub, tags, session=session))
    return uploaded


def main(argv=None):
    parser = argparse.ArgumentParser(description="Upload a directory tree, tagging files by folder names.")
    parser.add_argument("server_url", help="e.g. http://localhost:8000")
    parser.add_argument("path", help="root directory to upload")
    args = parser.parse_args(argv)

    if not os.path.isdir(args.path):
        parser.error(f"{args.path} is not a directory")

    with requests.Session() as session:
        uploaded = upload_dir(args.server_url, args.path, session=session)
    logger.info(f"Uploaded {len(uploaded)} file(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
