import os 

class Config:
    DATABASE_PATH = os.getenv('DATABASE_PATH', 'amazon.db')
    SOURCE_URL = os.getenv('SOURCE_URL', 'https://s3.amazonaws.com/roxiler.com/product_transaction.json')
    FETCH_TIMEOUT = float(os.getenv('FETCH_TIMEOUT', 10))
    DEFAULT_IMAGE = os.getenv('DEFAULT_IMAGE', 'default-image.jpg')
    MAX_PER_PAGE = int(os.getenv('MAX_PER_PAGE', 0))
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    PORT = int(os.getenv('PORT', 3000))
