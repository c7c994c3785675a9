# vitrine/core/aws.py
import logging
import uuid
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile

from vitrine.core.config import config

logger = logging.getLogger(__name__)

S3_PUBLIC_BASE_URL = (
    f"https://{config.AWS_BUCKET_NAME}.s3.{config.AWS_REGION}.amazonaws.com"
    if config.AWS_BUCKET_NAME and config.AWS_REGION else None
)

s3_client = None
try:
    s3_client = boto3.client(
        's3',
        aws_access_key_id=config.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=config.AWS_SECRET_ACCESS_KEY,
        region_name=config.AWS_REGION
    )
    logger.info("✅ Cliente S3 Boto3 inicializado com sucesso.")
except (BotoCoreError, ClientError) as e:
    logger.error(f"🚨 FALHA ao inicializar o cliente S3 Boto3: {e}", exc_info=True)


def receipt_file_key(merchant_id: int, month_year: str, filename: str) -> str:
    """commissions/<lojista>/<YYYY-MM>/<uuid>.<ext>"""
    ext = filename.rsplit('.', 1)[-1].lower() if '.' in filename else 'bin'
    return f"{config.RECEIPTS_FOLDER}/{merchant_id}/{month_year}/{uuid.uuid4()}.{ext}"


def get_file_url(file_key: Optional[str]) -> Optional[str]:
    if not file_key or not S3_PUBLIC_BASE_URL:
        return None
    return f"{S3_PUBLIC_BASE_URL}/{file_key}"


def upload_receipt(file: UploadFile, merchant_id: int, month_year: str) -> Optional[str]:
    """
    Envia o comprovante para o bucket e retorna a URL pública.

    Retorna None se o S3 não estiver configurado ou o upload falhar.
    """
    if not s3_client or not config.AWS_BUCKET_NAME:
        logger.error("Upload cancelado: S3 não configurado.")
        return None
    if not file or not file.filename:
        logger.warning("Upload cancelado: arquivo sem nome.")
        return None

    file_key = receipt_file_key(merchant_id, month_year, file.filename)

    try:
        s3_client.upload_fileobj(
            file.file,
            config.AWS_BUCKET_NAME,
            file_key,
            ExtraArgs={'ACL': 'public-read', 'ContentType': file.content_type or 'application/octet-stream'}
        )
    except (BotoCoreError, ClientError) as e:
        logger.error(f"🚨 FALHA no upload para a chave '{file_key}'. Erro: {e}", exc_info=True)
        return None

    logger.info(f"✅ Comprovante enviado: '{file_key}'")
    return get_file_url(file_key)
