from django.urls import path

from vision.views import FoodImageURLView

urlpatterns = [
    path("food-images/url/", FoodImageURLView.as_view(), name="vision-food-image-url"),
]
