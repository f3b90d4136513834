from django.urls import path, re_path

from ebook import views

app_name = 'ebook'

urlpatterns = [
    path('', views.reader, name='reader'),
    path('buy', views.buy, name='buy'),
    path('claim', views.claim, name='claim'),
    re_path(r'^page/(?P<number>[^/]*)$', views.page, name='page'),
    path('cover.png', views.cover, name='cover'),
]
