"""Static OpenAPI 3.0 document served at /api/swagger."""

import config
from schemas import ORDER_STATUSES


def _ref(name):
    return {"$ref": f"#/components/schemas/{name}"}


def _json(schema, description):
    return {"description": description, "content": {"application/json": {"schema": schema}}}


def _error(description):
    return _json(_ref("ErrorResponse"), description)


def _success(data_schema=None, description="Successful response", extra=None):
    props = {"success": {"type": "boolean", "example": True}}
    if data_schema is not None:
        props["data"] = data_schema
    props.update(extra or {})
    return _json({"type": "object", "properties": props}, description)


def _id_param(description):
    return [{"in": "path", "name": "id", "required": True, "schema": {"type": "string"}, "description": description}]


AUTH_ERRORS = {
    "401": _error("Authentication failed (MISSING_AUTH, INVALID_TOKEN, MISSING_API_KEY, INVALID_API_KEY)"),
    "500": _error("Internal server error"),
}

ADMIN_ERRORS = {
    **AUTH_ERRORS,
    "403": _error("Admin access required (ADMIN_REQUIRED)"),
}

PRODUCT_PROPERTIES = {
    "id": {"type": "string", "example": "665f1c2e9b1e8a3f4c2d1a00"},
    "name": {"type": "string", "example": "Bug Hunter Pro 3000"},
    "description": {"type": "string"},
    "price": {"type": "number", "description": "Price in EUR", "example": 299.99},
    "category": {"type": "string", "example": "Software"},
    "stock": {"type": "integer", "example": 50},
    "inStock": {"type": "boolean", "example": True},
    "rating": {"type": "number", "minimum": 0, "maximum": 5, "example": 4.8},
    "reviewCount": {"type": "integer", "example": 127},
    "image": {"type": "string", "nullable": True, "example": "/uploads/product_1700000000000.png"},
    "createdAt": {"type": "string", "format": "date-time"},
    "updatedAt": {"type": "string", "format": "date-time"},
}

PRODUCT_INPUT = {
    "type": "object",
    "required": ["name", "description", "price", "category", "stock"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "description": {"type": "string", "minLength": 1},
        "price": {"type": "number", "exclusiveMinimum": 0},
        "category": {"type": "string", "minLength": 1},
        "stock": {"type": "integer", "minimum": 0},
        "inStock": {"type": "boolean", "description": "Defaults to stock > 0"},
        "image": {"type": "string", "nullable": True},
        "rating": {"type": "number", "minimum": 0, "maximum": 5},
        "reviewCount": {"type": "integer", "minimum": 0},
    },
}


def build_openapi_spec() -> dict:
    return {
        "openapi": "3.0.0",
        "info": {
            "title": "QALab Shop API",
            "version": "1.0.0",
            "description": (
                "API of the QALab Shop practice storefront. Authenticate with the auth-token cookie, "
                "an Authorization: Bearer token from GET /api/auth/token, or a legacy X-API-Key header."
            ),
        },
        "servers": [{"url": config.PUBLIC_URL}],
        "components": {
            "securitySchemes": {
                "BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"},
                "CookieAuth": {"type": "apiKey", "in": "cookie", "name": config.AUTH_COOKIE_NAME},
                "ApiKeyAuth": {
                    "type": "apiKey",
                    "in": "header",
                    "name": "X-API-Key",
                    "description": "Legacy static key. Requests with a body must send Content-Type: application/json.",
                },
            },
            "schemas": {
                "ErrorResponse": {
                    "type": "object",
                    "properties": {
                        "success": {"type": "boolean", "example": False},
                        "error": {
                            "type": "object",
                            "properties": {
                                "code": {"type": "string", "example": "MISSING_AUTH"},
                                "message": {"type": "string"},
                                "details": {
                                    "type": "array",
                                    "items": {
                                        "type": "object",
                                        "properties": {"field": {"type": "string"}, "message": {"type": "string"}},
                                    },
                                },
                            },
                        },
                        "message": {"type": "string"},
                        "timestamp": {"type": "string", "format": "date-time", "example": "2024-01-01T12:00:00Z"},
                    },
                },
                "User": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "name": {"type": "string"},
                        "email": {"type": "string", "format": "email"},
                        "role": {"type": "string", "enum": ["USER", "ADMIN"]},
                    },
                },
                "Product": {"type": "object", "required": ["id", "name", "price", "category"], "properties": PRODUCT_PROPERTIES},
                "ProductInput": PRODUCT_INPUT,
                "OrderItem": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "orderId": {"type": "string"},
                        "productId": {"type": "string"},
                        "quantity": {"type": "integer", "example": 2},
                        "price": {"type": "number", "description": "Unit price at order time", "example": 10},
                        "product": {
                            "type": "object",
                            "nullable": True,
                            "properties": {
                                "id": {"type": "string"},
                                "name": {"type": "string"},
                                "price": {"type": "number"},
                                "image": {"type": "string", "nullable": True},
                            },
                        },
                    },
                },
                "Order": {
                    "type": "object",
                    "required": ["id", "status", "totalAmount"],
                    "properties": {
                        "id": {"type": "string"},
                        "userId": {"type": "string"},
                        "status": {"type": "string", "enum": ORDER_STATUSES, "example": "PENDING"},
                        "totalAmount": {"type": "number", "example": 20},
                        "customerInfo": {
                            "type": "object",
                            "properties": {
                                k: {"type": "string"}
                                for k in ["name", "email", "phone", "address", "city", "zipCode", "country"]
                            },
                        },
                        "shipping": {"type": "object", "additionalProperties": True},
                        "createdAt": {"type": "string", "format": "date-time"},
                        "updatedAt": {"type": "string", "format": "date-time"},
                        "user": _ref("User"),
                        "items": {"type": "array", "items": _ref("OrderItem")},
                    },
                },
                "OrderInput": {
                    "type": "object",
                    "properties": {
                        "items": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "required": ["quantity"],
                                "properties": {
                                    "productId": {"type": "string"},
                                    "quantity": {"type": "integer", "minimum": 1},
                                    "price": {"type": "number"},
                                },
                            },
                        },
                        "totals": {
                            "type": "object",
                            "properties": {k: {"type": "number"} for k in ["subtotal", "tax", "shipping", "total"]},
                        },
                        "shipping": {"type": "object", "additionalProperties": True},
                        "payment": {"type": "object", "additionalProperties": True},
                        "status": {"type": "string", "enum": ORDER_STATUSES},
                    },
                },
            },
        },
        "security": [{"BearerAuth": []}, {"CookieAuth": []}, {"ApiKeyAuth": []}],
        "paths": {
            "/api/products": {
                "get": {
                    "summary": "List products",
                    "tags": ["Products"],
                    "security": [],
                    "parameters": [
                        {"in": "query", "name": "search", "schema": {"type": "string"}, "description": "Substring of name or description"},
                        {"in": "query", "name": "category", "schema": {"type": "string"}},
                        {"in": "query", "name": "inStock", "schema": {"type": "boolean"}},
                        {"in": "query", "name": "minRating", "schema": {"type": "number"}},
                        {"in": "query", "name": "priceMin", "schema": {"type": "number"}},
                        {"in": "query", "name": "priceMax", "schema": {"type": "number"}},
                    ],
                    "responses": {
                        "200": _success({"type": "array", "items": _ref("Product")}),
                        "400": _error("Invalid filter value"),
                    },
                }
            },
            "/api/products/{id}": {
                "get": {
                    "summary": "Get product by ID",
                    "tags": ["Products"],
                    "parameters": _id_param("The product ID"),
                    "responses": {"200": _success(_ref("Product")), "404": _error("Product not found"), **AUTH_ERRORS},
                }
            },
            "/api/orders": {
                "get": {
                    "summary": "List orders",
                    "description": "Admins see every order, other users only their own. Newest first.",
                    "tags": ["Orders"],
                    "responses": {"200": _success({"type": "array", "items": _ref("Order")}), **AUTH_ERRORS},
                },
                "post": {
                    "summary": "Create order",
                    "tags": ["Orders"],
                    "requestBody": {"required": True, "content": {"application/json": {"schema": _ref("OrderInput")}}},
                    "responses": {
                        "200": _success(
                            _ref("Order"),
                            "Order created",
                            {"orderId": {"type": "string"}, "message": {"type": "string"}},
                        ),
                        "400": _error("Invalid order data"),
                        **AUTH_ERRORS,
                    },
                },
            },
            "/api/orders/{id}": {
                "get": {
                    "summary": "Get order by ID",
                    "tags": ["Orders"],
                    "parameters": _id_param("The order ID"),
                    "responses": {"200": _success(_ref("Order")), "404": _error("Order not found"), **AUTH_ERRORS},
                }
            },
            "/api/orders/{id}/cancel": {
                "post": {
                    "summary": "Cancel order",
                    "description": "Only PENDING and PROCESSING orders can be cancelled.",
                    "tags": ["Orders"],
                    "parameters": _id_param("The order ID to cancel"),
                    "responses": {
                        "200": _success(_ref("Order"), "Order cancelled", {"message": {"type": "string"}}),
                        "404": _error("Order not found"),
                        "409": _error("Order cannot be cancelled in its current status"),
                        **AUTH_ERRORS,
                    },
                }
            },
            "/api/auth/register": {
                "post": {
                    "summary": "Register",
                    "tags": ["Auth"],
                    "security": [],
                    "requestBody": {
                        "required": True,
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "object",
                                    "required": ["name", "email", "password"],
                                    "properties": {
                                        "name": {"type": "string", "minLength": 2},
                                        "email": {"type": "string", "format": "email"},
                                        "password": {"type": "string", "minLength": 6},
                                    },
                                }
                            }
                        },
                    },
                    "responses": {
                        "200": _success(None, "Registered, auth cookie set", {"user": _ref("User")}),
                        "400": _error("Validation failed"),
                        "409": _error("Email already in use"),
                    },
                }
            },
            "/api/auth/login": {
                "post": {
                    "summary": "Log in",
                    "tags": ["Auth"],
                    "security": [],
                    "requestBody": {
                        "required": True,
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "object",
                                    "required": ["email", "password"],
                                    "properties": {
                                        "email": {"type": "string", "format": "email"},
                                        "password": {"type": "string"},
                                    },
                                }
                            }
                        },
                    },
                    "responses": {
                        "200": _success(None, "Logged in, auth cookie set", {"user": _ref("User")}),
                        "401": _error("Invalid credentials"),
                    },
                }
            },
            "/api/auth/logout": {
                "post": {"summary": "Log out", "tags": ["Auth"], "security": [], "responses": {"200": _success()}}
            },
            "/api/auth/profile": {
                "get": {
                    "summary": "Current user",
                    "tags": ["Auth"],
                    "responses": {"200": _success(None, extra={"user": _ref("User")}), **AUTH_ERRORS},
                },
                "put": {
                    "summary": "Update profile",
                    "tags": ["Auth"],
                    "responses": {
                        "200": _success(None, extra={"user": _ref("User")}),
                        "400": _error("Validation failed"),
                        "409": _error("Email already in use"),
                        **AUTH_ERRORS,
                    },
                },
            },
            "/api/auth/token": {
                "get": {
                    "summary": "Mint an API bearer token for the current session",
                    "tags": ["Auth"],
                    "responses": {"200": _success({"type": "object"}), **AUTH_ERRORS},
                }
            },
            "/api/admin/products": {
                "get": {
                    "summary": "List all products (admin)",
                    "tags": ["Admin"],
                    "responses": {"200": _success({"type": "array", "items": _ref("Product")}), **ADMIN_ERRORS},
                },
                "post": {
                    "summary": "Create product (admin)",
                    "tags": ["Admin"],
                    "requestBody": {"required": True, "content": {"application/json": {"schema": _ref("ProductInput")}}},
                    "responses": {"200": _success(_ref("Product")), "400": _error("Validation failed"), **ADMIN_ERRORS},
                },
            },
            "/api/admin/products/{id}": {
                "put": {
                    "summary": "Update product (admin)",
                    "tags": ["Admin"],
                    "parameters": _id_param("The product ID"),
                    "requestBody": {"required": True, "content": {"application/json": {"schema": _ref("ProductInput")}}},
                    "responses": {
                        "200": _success(_ref("Product")),
                        "400": _error("Validation failed"),
                        "404": _error("Product not found"),
                        **ADMIN_ERRORS,
                    },
                },
                "delete": {
                    "summary": "Delete product (admin)",
                    "tags": ["Admin"],
                    "parameters": _id_param("The product ID"),
                    "responses": {"200": _success(), "404": _error("Product not found"), **ADMIN_ERRORS},
                },
            },
            "/api/upload/image": {
                "post": {
                    "summary": "Upload a product image (admin)",
                    "tags": ["Admin"],
                    "requestBody": {
                        "required": True,
                        "content": {
                            "multipart/form-data": {
                                "schema": {"type": "object", "properties": {"file": {"type": "string", "format": "binary"}}}
                            }
                        },
                    },
                    "responses": {
                        "200": _success(None, extra={"imageUrl": {"type": "string"}, "filename": {"type": "string"}}),
                        "400": _error("Missing file, unsupported type or larger than 5MB"),
                        **ADMIN_ERRORS,
                    },
                }
            },
            "/api/contact": {
                "post": {
                    "summary": "Send a contact message",
                    "tags": ["Contact"],
                    "security": [],
                    "responses": {"200": _success(), "400": _error("Missing required fields")},
                }
            },
            "/api/cart": {
                "get": {
                    "summary": "Get the cart of a session",
                    "tags": ["Cart"],
                    "security": [],
                    "parameters": [{"in": "header", "name": "X-Session-Id", "required": True, "schema": {"type": "string"}}],
                    "responses": {"200": _success({"type": "object"}), "400": _error("Missing X-Session-Id header")},
                },
                "put": {
                    "summary": "Replace the cart of a session",
                    "tags": ["Cart"],
                    "security": [],
                    "parameters": [{"in": "header", "name": "X-Session-Id", "required": True, "schema": {"type": "string"}}],
                    "responses": {"200": _success({"type": "object"}), "400": _error("Invalid cart")},
                },
                "delete": {
                    "summary": "Clear the cart of a session",
                    "tags": ["Cart"],
                    "security": [],
                    "parameters": [{"in": "header", "name": "X-Session-Id", "required": True, "schema": {"type": "string"}}],
                    "responses": {"200": _success()},
                },
            },
        },
    }
