"""
커스텀 예외 정의

카탈로그 전역에서 사용되는 예외 클래스들입니다.
각 예외는 호출자가 분기할 수 있는 하나의 오류 종류를 나타냅니다.
"""


class ProductNotFoundException(Exception):
    """
    상품을 찾을 수 없을 때 발생하는 예외

    HTTP Status Code: 404 Not Found
    """

    def __init__(self, product_id: str):
        self.product_id = product_id
        self.message = f"Product with id {product_id} not found"
        super().__init__(self.message)


class PhotoNotFoundException(Exception):
    """
    상품에 사진이 없거나 저장소에서 사진을 찾을 수 없을 때 발생하는 예외

    HTTP Status Code: 404 Not Found
    """

    def __init__(self, product_id: str | None = None, path: str | None = None):
        self.product_id = product_id
        self.path = path
        if path is not None:
            self.message = f"Photo '{path}' not found"
        else:
            self.message = f"Product {product_id} has no photo"
        super().__init__(self.message)


class InsufficientStockException(Exception):
    """
    재고 조정 결과가 음수가 될 때 발생하는 예외

    HTTP Status Code: 409 Conflict
    """

    def __init__(self, product_id: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        self.message = (
            f"Insufficient stock for product {product_id}: "
            f"requested change {requested}, available {available}"
        )
        super().__init__(self.message)


class StorageFailureException(Exception):
    """
    사진 저장소 업로드/조회/삭제 중 전송 오류가 발생했을 때의 예외

    HTTP Status Code: 502 Bad Gateway
    """

    def __init__(self, operation: str, path: str, reason: str = ""):
        self.operation = operation
        self.path = path
        self.reason = reason
        self.message = f"Photo storage {operation} failed for '{path}'"
        if reason:
            self.message = f"{self.message}: {reason}"
        super().__init__(self.message)


class ValidationFailureException(Exception):
    """
    잘못된 입력이 서비스 계층까지 도달했을 때 발생하는 예외 (예: 음수 가격)

    HTTP Status Code: 422 Unprocessable Entity
    """

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        self.message = f"Invalid value for '{field}': {reason}"
        super().__init__(self.message)


class ProductAlreadyExistsException(Exception):
    """
    중복된 SKU로 상품을 생성하거나 수정하려 할 때 발생하는 예외

    HTTP Status Code: 409 Conflict
    """

    def __init__(self, sku: str):
        self.sku = sku
        self.message = f"Product with sku '{sku}' already exists"
        super().__init__(self.message)


class LockAcquisitionException(Exception):
    """
    락 획득 실패 시 발생하는 예외

    HTTP Status Code: 409 Conflict
    """

    def __init__(self, resource: str, message: str = "Failed to acquire lock"):
        self.resource = resource
        self.message = f"{message} for resource: {resource}"
        super().__init__(self.message)


class CollaboratorException(Exception):
    """
    좋아요/댓글 서비스 호출이 실패했을 때 발생하는 예외

    HTTP Status Code: 502 Bad Gateway
    """

    def __init__(self, service: str, reason: str):
        self.service = service
        self.reason = reason
        self.message = f"{service} service call failed: {reason}"
        super().__init__(self.message)
