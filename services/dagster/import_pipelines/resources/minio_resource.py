# =============================================================================
# MinIO Resource - Upload Storage
# =============================================================================
# Reads uploaded tabular files from the uploads bucket for import.
# Implements the UploadStore protocol used by libs.importing.SourceLoader.
# =============================================================================

from dagster import ConfigurableResource
from minio import Minio
from minio.error import S3Error
from pydantic import Field

from libs.errors import InfrastructureError, InputError

__all__ = ["MinIOResource"]


class MinIOResource(ConfigurableResource):
    """
    Dagster resource for MinIO (S3-compatible object storage) operations.

    Attributes:
        endpoint: MinIO server endpoint (host:port)
        access_key: Access key for authentication
        secret_key: Secret key for authentication
        use_ssl: Whether to use SSL/TLS (default: False)
        uploads_bucket: Bucket holding uploaded files (default: "uploads")
    """

    endpoint: str = Field(..., description="MinIO server endpoint (host:port)")
    access_key: str = Field(..., description="Access key for authentication")
    secret_key: str = Field(..., description="Secret key for authentication")
    use_ssl: bool = Field(False, description="Whether to use SSL/TLS")
    uploads_bucket: str = Field("uploads", description="Uploads bucket name")

    def get_client(self) -> Minio:
        """
        Create a MinIO client instance.

        Returns:
            Configured Minio client
        """
        return Minio(
            self.endpoint,
            access_key=self.access_key,
            secret_key=self.secret_key,
            secure=self.use_ssl,
        )

    def read_upload(self, upload_id: str) -> bytes:
        """
        Download an uploaded file into memory.

        Args:
            upload_id: Object key in the uploads bucket (e.g., "user_1/sales.csv")

        Returns:
            Raw file bytes

        Raises:
            InputError: If the upload does not exist
            InfrastructureError: If the uploads bucket does not exist
            S3Error: For other storage errors
        """
        client = self.get_client()

        try:
            response = client.get_object(self.uploads_bucket, upload_id)
            try:
                return response.read()
            finally:
                response.close()
                response.release_conn()
        except S3Error as exc:
            if exc.code == "NoSuchKey":
                raise InputError(
                    f"Upload '{upload_id}' not found in bucket '{self.uploads_bucket}'"
                ) from exc
            if exc.code == "NoSuchBucket":
                raise InfrastructureError(
                    f"Uploads bucket '{self.uploads_bucket}' does not exist"
                ) from exc
            raise
