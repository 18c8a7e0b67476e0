import logging
from contextlib import asynccontextmanager

from bson.objectid import ObjectId
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
import database
from auth import hash_password
from routers import brands, cart, categories, orders, products, ratings, users, wishlists
from schemas import Brand as BrandSchema, Category as CategorySchema, Profile as ProfileSchema
from schemas import Product as ProductSchema, ProductDetail as ProductDetailSchema, User as UserSchema
from utils import error_response, slugify

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        database.ensure_indexes()
    else:
        logger.warning("DATABASE_URL / DATABASE_NAME not set; database routes will fail")
    logger.info(f"--- Storefront API starting (mode: {config.ENVIRONMENT}) ---")
    yield


app = FastAPI(title="Storefront API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if config.ENVIRONMENT == "development":

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        client = request.client.host if request.client else "-"
        logger.info(f"IP: {client} | {request.method} {request.url.path} {response.status_code}")
        return response


for module in (users, cart, categories, brands, products, ratings, wishlists, orders):
    app.include_router(module.router)


# ----------------------- Errors -----------------------
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, dict):
        body = error_response(exc.detail.get("message", ""), exc.detail.get("error"))
    else:
        body = error_response(str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(body), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content=jsonable_encoder(error_response("Validation failed", exc.errors())))


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    logger.warning(f"Duplicate key on {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content=error_response("Duplicate value", str(exc)))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content=error_response("Server error", str(exc)))


# ----------------------- Health -----------------------
@app.get("/")
def root():
    return {"message": "Storefront API running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if config.DATABASE_URL else "❌ Not Set",
        "database_name": "✅ Set" if config.DATABASE_NAME else "❌ Not Set",
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        if database.db is not None:
            response["database"] = "✅ Connected & Working"
            response["connection_status"] = "Connected"
            response["collections"] = database.db.list_collection_names()[:10]
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


# ----------------------- Seed Demo Data -----------------------
DEMO_BRANDS = ["Google", "Apple", "Lenovo", "Sony", "Keychron", "Nike"]

# root -> children
DEMO_CATEGORIES = {
    "Electronics": ["Mobiles", "Laptops", "Accessories"],
    "Fashion": ["Footwear"],
}

DEMO_PRODUCTS = [
    {
        "title": "Pixel 7A",
        "brand": "Google",
        "category": "Mobiles",
        "description": "Powerful camera and smooth Android experience.",
        "price": 34999,
        "discount_price": 32999,
        "thumbnail": "https://images.unsplash.com/photo-1511707171634-5f897ff02aa9",
        "specifications": {"storage": "128GB", "ram": "8GB"},
        "stock": 25,
    },
    {
        "title": "iPhone 14",
        "brand": "Apple",
        "category": "Mobiles",
        "description": "A15 Bionic with stunning display.",
        "price": 69999,
        "thumbnail": "https://images.unsplash.com/photo-1603899123335-4a9d94dfbd89",
        "specifications": {"storage": "128GB", "ram": "6GB"},
        "stock": 15,
    },
    {
        "title": "ThinkPad X1",
        "brand": "Lenovo",
        "category": "Laptops",
        "description": "Business-class laptop with legendary keyboard.",
        "price": 119999,
        "thumbnail": "https://images.unsplash.com/photo-1517336714731-489689fd1ca8",
        "specifications": {"cpu": "i7", "ram": "16GB", "storage": "512GB SSD"},
        "stock": 10,
    },
    {
        "title": "Noise Cancelling Headphones",
        "brand": "Sony",
        "category": "Accessories",
        "description": "Immerse in music with ANC.",
        "price": 19999,
        "thumbnail": "https://images.unsplash.com/photo-1518443248587-30bdc8f94f04",
        "specifications": {"battery": "30h"},
        "stock": 40,
    },
    {
        "title": "Mechanical Keyboard",
        "brand": "Keychron",
        "category": "Accessories",
        "description": "Hot-swappable RGB keyboard.",
        "price": 7999,
        "thumbnail": "https://images.unsplash.com/photo-1516382799247-87df95d790b5",
        "specifications": {"switches": "Gateron"},
        "stock": 30,
    },
    {
        "title": "Casual Sneakers",
        "brand": "Nike",
        "category": "Footwear",
        "description": "Comfortable everyday wear.",
        "price": 4999,
        "discount_price": 3999,
        "thumbnail": "https://images.unsplash.com/photo-1525966222134-fcfa99b8ae77",
        "specifications": {"size": "7-11"},
        "stock": 50,
    },
]


def _seed_admin():
    admin = database.users.find_one({"role": "admin"})
    if admin:
        return admin["_id"]
    user = UserSchema(
        name="Admin",
        email="admin@shop.com",
        mobile="9000000000",
        password_hash=hash_password(config.SEED_ADMIN_PASSWORD),
        role="admin",
    )
    admin_id = database.users.insert(user)
    database.create_document("profile", ProfileSchema(user=admin_id, name=user.name, email=user.email, role="admin", phone=user.mobile))
    return admin_id


def _get_or_insert(repo, model):
    existing = repo.find_one({"slug": model.slug}, include_deleted=True)
    if existing:
        return existing["_id"]
    return repo.insert(model)


@app.post("/seed")
def seed():
    if config.ENVIRONMENT == "production":
        raise HTTPException(status_code=403, detail="Seeding is disabled in production")
    admin_id = _seed_admin()
    if database.collection("product").count_documents({}) > 0:
        return {"seeded": False, "message": "Products already exist"}

    brand_ids = {
        name: _get_or_insert(database.brands, BrandSchema(name=name, slug=slugify(name), created_by=admin_id))
        for name in DEMO_BRANDS
    }
    category_ids = {}
    for order, (root, children) in enumerate(DEMO_CATEGORIES.items()):
        root_id = _get_or_insert(
            database.categories, CategorySchema(name=root, slug=slugify(root), sort_order=order, is_featured=True)
        )
        category_ids[root] = root_id
        for position, child in enumerate(children):
            category_ids[child] = _get_or_insert(
                database.categories,
                CategorySchema(name=child, slug=slugify(child), parent_category=root_id, sort_order=position),
            )

    for p in DEMO_PRODUCTS:
        product_id = database.products.insert(
            ProductSchema(
                title=p["title"],
                slug=slugify(p["title"]),
                brand=brand_ids[p["brand"]],
                category=category_ids[p["category"]],
                thumbnail=p["thumbnail"],
                images=[p["thumbnail"]],
                price=p["price"],
                discount_price=p.get("discount_price"),
                created_by=admin_id,
            )
        )
        detail_id = database.create_document(
            "product_detail",
            ProductDetailSchema(
                product_id=product_id,
                description=p["description"],
                specifications=p["specifications"],
                stock=p["stock"],
            ),
        )
        database.products.update(product_id, {"detail": ObjectId(detail_id)})
    logger.info(f"Seeded {len(DEMO_PRODUCTS)} demo products")
    return {"seeded": True, "products": database.collection("product").count_documents({})}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
