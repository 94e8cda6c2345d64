import boto3

from punklist import config

# (config path attribute, object key) for every file mirrored to R2
MIRRORED_FILES = [
    ("ARTISTS_PATH", "artists.json"),
    ("VENUES_PATH", "venues.json"),
    ("CALENDAR_PATH", "calendar.json"),
    ("RAW_PATH", "raw.json"),
    ("STATUS_PATH", "run-status.json"),
    ("CORRECTIONS_PATH", "spelling-corrections.json"),
]


def has_r2_credentials():
    return all([config.R2_ACCOUNT_ID, config.R2_ACCESS_KEY_ID, config.R2_SECRET_ACCESS_KEY])


def r2_client():
    return boto3.client(
        "s3",
        endpoint_url=f"https://{config.R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=config.R2_ACCESS_KEY_ID,
        aws_secret_access_key=config.R2_SECRET_ACCESS_KEY,
    )


def download_from_r2(key, local_path):
    """
    Download a file from R2 if it exists.
    Returns True if downloaded, False if not found, not configured or on error.
    """
    if not has_r2_credentials():
        return False

    try:
        s3 = r2_client()
        response = s3.get_object(Bucket=config.R2_BUCKET_NAME, Key=key)
        local_path.parent.mkdir(parents=True, exist_ok=True)
        with open(local_path, "wb") as f:
            f.write(response["Body"].read())
        return True
    except Exception:
        return False


def upload_to_r2(log_func=None):
    """
    Upload the snapshot files to Cloudflare R2.
    Returns True if successful, False otherwise.
    log_func: optional logging function (defaults to print)
    """
    log = log_func or print

    if not has_r2_credentials():
        log("R2 upload skipped: missing R2 credentials")
        return False

    try:
        s3 = r2_client()
        uploaded = []

        for attr, key in MIRRORED_FILES:
            path = getattr(config, attr)
            if path.exists():
                with open(path, "rb") as f:
                    s3.put_object(
                        Bucket=config.R2_BUCKET_NAME,
                        Key=key,
                        Body=f.read(),
                        ContentType="application/json",
                    )
                uploaded.append(key)

        log(f"Uploaded to R2: {', '.join(uploaded)}")
        return True
    except Exception as e:
        log(f"R2 upload failed: {e}")
        return False
