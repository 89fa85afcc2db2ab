"""Render a single thumbnail locally through the same pipeline the Lambda runs."""
import argparse
import base64
import json
import logging
import sys
from dataclasses import replace

from thumbnailer.config import load_settings
from thumbnailer.image.image_handler import render_request
from thumbnailer.storage import LocalObjectStore, S3ObjectStore


def build_event(key, settings, width=None, height=None, format=None):
    params = {k: str(v) for k, v in (('width', width), ('height', height), ('format', format)) if v is not None}
    return {
        "path": f"/{key}",
        "headers": {settings.origin_header: settings.secret_key},
        "queryStringParameters": params or None
    }


def main(argv=None):
    parser = argparse.ArgumentParser(description="Render a thumbnail from S3 or a local directory.")
    parser.add_argument("key", help="object key, e.g. cats/a.png")
    parser.add_argument("--width", type=int)
    parser.add_argument("--height", type=int)
    parser.add_argument("--format", help="jpeg, png or webp")
    parser.add_argument("-o", "--output", help="output file (default: thumbnail.<format>)")
    parser.add_argument("--local-dir", help="read originals from this directory instead of S3")
    parser.add_argument("--config", help="path to config.yaml")
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    settings = load_settings(args.config)
    if not settings.secret_key:
        # Nothing crosses a network boundary here; any non-empty secret will do
        settings = replace(settings, secret_key="local")

    if args.local_dir:
        store = LocalObjectStore(args.local_dir)
    else:
        if not settings.bucket_name:
            print("❌ Error: no bucket configured (set BUCKET_NAME or aws.thumbnail_source_bucket)")
            return 1
        store = S3ObjectStore(settings.bucket_name, region=settings.region)

    event = build_event(args.key, settings, args.width, args.height, args.format)
    response = render_request(event, settings, store)

    if response["statusCode"] != 200:
        error = json.loads(response["body"])["error"]
        print(f"❌ {response['statusCode']}: {error}")
        return 1

    content_type = response["headers"]["Content-Type"]
    output = args.output or f"thumbnail.{content_type.split('/', 1)[1]}"
    with open(output, "wb") as f:
        f.write(base64.b64decode(response["body"]))

    if args.debug:
        print(f"✅ {args.key} -> {output} ({content_type})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
