import os

import uvicorn

if __name__ == "__main__":
    uvicorn.run("catalog_service.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8080")))
