import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, File, Header, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.staticfiles import StaticFiles
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

import config
import database
from auth import (
    AuthResult,
    clear_auth_cookie,
    create_token,
    hash_password,
    public_user,
    require_admin,
    require_request_auth,
    require_session_user,
    require_user,
    set_auth_cookie,
    verify_password,
)
from cart import Cart, CartLine, clear_session_cart, load_session_cart, save_session_cart
from catalog import build_product_filter, get_product, list_products, serialize_product
from errors import (
    EMAIL_IN_USE,
    INVALID_CREDENTIALS,
    INVALID_FILE,
    VALIDATION_ERROR,
    ApiError,
    not_found,
    register_exception_handlers,
    validation_failed,
)
from orders import cancel_order, create_order, get_order, list_orders
from schemas import (
    CartUpdateRequest,
    ContactRequest,
    LoginRequest,
    OrderCreateRequest,
    Product,
    ProductCreateRequest,
    ProductUpdateRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    User,
)
from swagger import build_openapi_spec

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        database.ensure_indexes()
    except PyMongoError as e:
        logger.warning("Could not ensure indexes, database unavailable: %s", e)
    yield


app = FastAPI(title="QALab Shop API", docs_url=None, redoc_url=None, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

os.makedirs(config.UPLOAD_DIR, exist_ok=True)
app.mount(config.UPLOAD_URL_PREFIX, StaticFiles(directory=config.UPLOAD_DIR), name="uploads")


@app.get("/")
def root():
    return {"status": "ok", "service": "qalab-shop"}


@app.get("/api/health")
def health():
    status = {
        "backend": "running",
        "database": "not-configured",
    }
    try:
        database.db.list_collection_names()
        status["database"] = "connected"
    except PyMongoError as e:
        logger.warning("Database health check failed: %s", e)
        status["database"] = "error"
    return status


# Auth Endpoints
@app.post("/api/auth/register")
def register(payload: RegisterRequest, response: Response):
    users = database.get_collection("user")
    if users.find_one({"email": payload.email}):
        raise ApiError(409, EMAIL_IN_USE, "User with this email already exists")
    user = User(name=payload.name, email=payload.email, password_hash=hash_password(payload.password))
    try:
        user_id = database.create_document("user", user)
    except DuplicateKeyError:
        raise ApiError(409, EMAIL_IN_USE, "User with this email already exists")
    user_doc = database.find_by_id("user", user_id)
    set_auth_cookie(response, create_token(user_doc))
    logger.info("User registered: %s", payload.email)
    return {"success": True, "message": "User registered successfully", "user": public_user(user_doc)}


@app.post("/api/auth/login")
def login(payload: LoginRequest, response: Response):
    user = database.get_collection("user").find_one({"email": payload.email})
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        logger.warning("Failed login for %s", payload.email)
        raise ApiError(401, INVALID_CREDENTIALS, "Invalid email or password")
    set_auth_cookie(response, create_token(user))
    logger.info("User logged in: %s", payload.email)
    return {"success": True, "message": "Logged in successfully", "user": public_user(user)}


@app.post("/api/auth/logout")
def logout(response: Response):
    clear_auth_cookie(response)
    return {"success": True, "message": "Logged out successfully"}


@app.get("/api/auth/profile")
def get_profile(user: dict = Depends(require_session_user)):
    return {"success": True, "user": public_user(user)}


@app.put("/api/auth/profile")
def update_profile(payload: ProfileUpdateRequest, user: dict = Depends(require_session_user)):
    users = database.get_collection("user")
    existing = users.find_one({"email": payload.email})
    if existing and existing["_id"] != user["_id"]:
        raise ApiError(409, EMAIL_IN_USE, "Email already in use")
    try:
        updated = users.find_one_and_update(
            {"_id": user["_id"]},
            {"$set": {"name": payload.name, "email": payload.email, "updated_at": database.now()}},
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        raise ApiError(409, EMAIL_IN_USE, "Email already in use")
    return {"success": True, "user": public_user(updated)}


@app.get("/api/auth/token")
def mint_token(user: dict = Depends(require_session_user)):
    access_token = create_token(user)
    return {
        "success": True,
        "data": {
            "accessToken": access_token,
            "user": public_user(user),
            "usage": {
                "headerName": "Authorization",
                "headerValue": f"Bearer {access_token}",
                "example": f'curl -H "Authorization: Bearer {access_token}" {config.PUBLIC_URL}/api/orders',
            },
        },
    }


# Product Endpoints
@app.get("/api/products")
def products_index(
    search: Optional[str] = None,
    category: Optional[str] = None,
    inStock: Optional[str] = None,
    minRating: Optional[str] = None,
    priceMin: Optional[str] = None,
    priceMax: Optional[str] = None,
):
    filt = build_product_filter(search, category, inStock, minRating, priceMin, priceMax)
    return {"success": True, "data": list_products(filt)}


@app.get("/api/products/{product_id}")
def product_detail(product_id: str, auth: AuthResult = Depends(require_request_auth)):
    product = get_product(product_id)
    if not product:
        raise not_found("Product")
    return {"success": True, "data": product}


# Orders
@app.get("/api/orders")
def orders_index(user: dict = Depends(require_user)):
    return {"success": True, "data": list_orders(user)}


@app.post("/api/orders")
def place_order(payload: OrderCreateRequest, user: dict = Depends(require_user)):
    order = create_order(user, payload)
    return {"success": True, "orderId": order["id"], "message": "Order placed successfully", "data": order}


@app.get("/api/orders/{order_id}")
def order_detail(order_id: str, user: dict = Depends(require_user)):
    return {"success": True, "data": get_order(user, order_id)}


@app.post("/api/orders/{order_id}/cancel")
def order_cancel(order_id: str, user: dict = Depends(require_user)):
    order = cancel_order(user, order_id)
    return {"success": True, "message": "Order cancelled successfully", "data": order}


# Admin
@app.get("/api/admin/products")
def admin_list_products(admin: dict = Depends(require_admin)):
    return {"success": True, "data": list_products()}


@app.post("/api/admin/products")
def admin_create_product(payload: ProductCreateRequest, admin: dict = Depends(require_admin)):
    data = payload.model_dump()
    if data["in_stock"] is None:
        data["in_stock"] = data["stock"] > 0
    data["rating"] = data["rating"] or 0
    data["review_count"] = data["review_count"] or 0
    product_id = database.create_document("product", Product(**data))
    logger.info("Product %s created by %s", product_id, admin["email"])
    return {
        "success": True,
        "message": "Product created successfully",
        "data": serialize_product(database.find_by_id("product", product_id)),
    }


@app.put("/api/admin/products/{product_id}")
def admin_update_product(product_id: str, payload: ProductUpdateRequest, admin: dict = Depends(require_admin)):
    oid = database.parse_object_id(product_id)
    products = database.get_collection("product")
    if oid is None or not products.find_one({"_id": oid}):
        raise not_found("Product")

    update = payload.model_dump(exclude_unset=True)
    if update.get("stock") is not None and update.get("in_stock") is None:
        update["in_stock"] = update["stock"] > 0
    # only image may be cleared with an explicit null
    update = {k: v for k, v in update.items() if v is not None or k == "image"}
    update["updated_at"] = database.now()

    doc = products.find_one_and_update({"_id": oid}, {"$set": update}, return_document=ReturnDocument.AFTER)
    logger.info("Product %s updated by %s", product_id, admin["email"])
    return {"success": True, "message": "Product updated successfully", "data": serialize_product(doc)}


@app.delete("/api/admin/products/{product_id}")
def admin_delete_product(product_id: str, admin: dict = Depends(require_admin)):
    oid = database.parse_object_id(product_id)
    if oid is None:
        raise not_found("Product")
    res = database.get_collection("product").delete_one({"_id": oid})
    if res.deleted_count == 0:
        raise not_found("Product")
    logger.info("Product %s deleted by %s", product_id, admin["email"])
    return {"success": True, "message": "Product deleted successfully"}


@app.post("/api/upload/image")
async def upload_image(file: Optional[UploadFile] = File(None), admin: dict = Depends(require_admin)):
    if file is None:
        raise ApiError(400, INVALID_FILE, "No file uploaded")
    if file.content_type not in config.ALLOWED_IMAGE_TYPES:
        raise ApiError(400, INVALID_FILE, "Invalid file type. Only JPEG, PNG, WebP, and GIF are allowed.")
    content = await file.read()
    if len(content) > config.MAX_UPLOAD_BYTES:
        raise ApiError(400, INVALID_FILE, "File too large. Maximum size is 5MB.")

    # the stored extension follows the checked content type, never the client filename
    extension = config.IMAGE_EXTENSIONS[file.content_type]
    filename = f"product_{int(time.time() * 1000)}.{extension}"
    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    with open(os.path.join(config.UPLOAD_DIR, filename), "wb") as fh:
        fh.write(content)

    logger.info("Image %s uploaded by %s (%d bytes)", filename, admin["email"], len(content))
    return {"success": True, "imageUrl": f"{config.UPLOAD_URL_PREFIX}/{filename}", "filename": filename}


# API docs
@app.get("/api/swagger")
def swagger_document():
    return build_openapi_spec()


@app.get("/api-docs", include_in_schema=False)
def swagger_ui():
    return get_swagger_ui_html(openapi_url="/api/swagger", title="QALab Shop API")


# Contact
@app.post("/api/contact")
def contact(payload: ContactRequest):
    missing = [f for f in ("name", "email", "subject", "message") if not getattr(payload, f)]
    if missing:
        raise ApiError(
            400,
            VALIDATION_ERROR,
            f"Missing required fields: {', '.join(missing)}",
            [{"field": f, "message": "Field is required"} for f in missing],
        )
    logger.info(
        "Contact form submission from %s <%s>: %s (priority %s, via %s)",
        payload.name,
        payload.email,
        payload.subject,
        payload.priority,
        payload.contact_method,
    )
    return {"success": True, "message": "Message sent successfully! We will get back to you soon."}


# Cart
def session_id_header(x_session_id: Optional[str] = Header(None, alias="X-Session-Id")) -> str:
    if not x_session_id:
        raise validation_failed([{"field": "X-Session-Id", "message": "Header is required"}], "X-Session-Id header is required")
    return x_session_id


@app.get("/api/cart")
def get_cart(session_id: str = Depends(session_id_header)):
    return {"success": True, "data": load_session_cart(session_id).summary()}


@app.put("/api/cart")
def replace_cart(payload: CartUpdateRequest, session_id: str = Depends(session_id_header)):
    cart = Cart()
    for line in payload.items:
        product = line.product.model_dump()
        if line.id:
            cart.lines.append(CartLine(id=line.id, product=product, quantity=line.quantity))
        else:
            cart.add(product, line.quantity)
    save_session_cart(session_id, cart)
    return {"success": True, "data": cart.summary()}


@app.delete("/api/cart")
def delete_cart(session_id: str = Depends(session_id_header)):
    clear_session_cart(session_id)
    return {"success": True, "message": "Cart cleared"}


# Seed demo data
DEMO_USERS = [
    {"name": "Admin User", "email": "admin@qalab.hu", "password": "admin123", "role": "ADMIN"},
    {"name": "Test User", "email": "user@qalab.hu", "password": "user123", "role": "USER"},
]

DEMO_PRODUCTS = [
    {
        "name": "Bug Hunter Pro 3000",
        "description": "The ultimate bug hunting toolkit. Guaranteed to find every bug... or at least most of them.",
        "price": 299.99,
        "category": "Software",
        "stock": 25,
        "in_stock": True,
        "rating": 4.8,
        "review_count": 127,
        "image": "/uploads/free_ai_bug_hunter_pro_3000.svg",
    },
    {
        "name": "Coffee-to-Code Converter v2.1",
        "description": "Turns coffee into working code. Latte art accepted as input.",
        "price": 1299.99,
        "category": "Hardware",
        "stock": 8,
        "in_stock": True,
        "rating": 4.2,
        "review_count": 89,
        "image": "/uploads/free_ai_coffee_to_code_converter_v2_1.svg",
    },
    {
        "name": "Stack Overflow Subscription Premium",
        "description": "Unlimited copy-paste and premium \"works on my machine\" answers.",
        "price": 79.99,
        "category": "Subscription",
        "stock": 100,
        "in_stock": True,
        "rating": 4.9,
        "review_count": 342,
        "image": "/uploads/free_ai_stack_overflow_subscription_premium.svg",
    },
    {
        "name": "Rubber Duck Debugger Enterprise",
        "description": "A professional rubber duck for pair debugging. Listens, nods, never judges.",
        "price": 199.99,
        "category": "Hardware",
        "stock": 0,
        "in_stock": False,
        "rating": 4.5,
        "review_count": 203,
        "image": "/uploads/free_ai_rubber_duck_debugger_enterprise.svg",
    },
    {
        "name": "Ctrl+Z Time Machine",
        "description": "A real undo for life. Works on deleted code, sent emails and bad decisions.",
        "price": 1799.99,
        "category": "Hardware",
        "stock": 3,
        "in_stock": True,
        "rating": 3.7,
        "review_count": 156,
        "image": "/uploads/free_ai_ctrl_z_time_machine.svg",
    },
    {
        "name": "Lorem Ipsum Generator Deluxe",
        "description": "Endless placeholder text for every occasion. Now with meaningful sentences!",
        "price": 59.99,
        "category": "Software",
        "stock": 60,
        "in_stock": True,
        "rating": 4.1,
        "review_count": 278,
        "image": "/uploads/free_ai_lorem_ipsum_generator_deluxe.svg",
    },
    {
        "name": "Infinite Loop Detector",
        "description": "Stops infinite loops before your computer starts smoking.",
        "price": 349.99,
        "category": "Software",
        "stock": 15,
        "in_stock": True,
        "rating": 4.6,
        "review_count": 94,
        "image": "/uploads/free_ai_infinite_loop_detector.svg",
    },
    {
        "name": "Semicolon Recovery Kit",
        "description": "Emergency kit for missing semicolons. Has saved more than one career.",
        "price": 99.99,
        "category": "Emergency Kit",
        "stock": 0,
        "in_stock": False,
        "rating": 3.9,
        "review_count": 187,
        "image": "/uploads/free_ai_semicolon_recovery_kit.svg",
    },
]


def seed_demo_data() -> dict:
    users = database.get_collection("user")
    for u in DEMO_USERS:
        if not users.find_one({"email": u["email"]}):
            database.create_document(
                "user",
                User(name=u["name"], email=u["email"], password_hash=hash_password(u["password"]), role=u["role"]),
            )
    database.get_collection("product").delete_many({})
    for p in DEMO_PRODUCTS:
        database.create_document("product", Product(**p))
    logger.info("Seeded %d demo products", len(DEMO_PRODUCTS))
    return {"users": len(DEMO_USERS), "products": len(DEMO_PRODUCTS)}


@app.post("/api/admin/seed")
def seed_demo(admin: dict = Depends(require_admin)):
    return {"success": True, "message": "Demo data loaded", "data": seed_demo_data()}


if __name__ == "__main__":
    import sys

    if sys.argv[1:] == ["seed"]:
        print(seed_demo_data())
    else:
        import uvicorn

        uvicorn.run(app, host="0.0.0.0", port=config.PORT)
