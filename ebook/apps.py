from django.apps import AppConfig
from loguru import logger


class EbookConfig(AppConfig):
    name = 'ebook'
    context = None

    def ready(self):
        from ebook.context import build_context

        self.context = build_context()
        logger.info('reader ready: title={!r} pages={}',
                    self.context.config.title, self.context.config.page_count)
